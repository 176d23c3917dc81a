"""Decoded value of a ``Properties70/P`` entry."""

import numpy as np


# Value kinds
EMPTY = "empty"
BLOB = "blob"
STRING = "string"
F32 = "f32"
F64 = "f64"
I64 = "i64"
VEC_F32 = "vec_f32"
VEC_F64 = "vec_f64"
VEC_I64 = "vec_i64"

VALUE_KINDS = (EMPTY, BLOB, STRING, F32, F64, I64, VEC_F32, VEC_F64, VEC_I64)


class PropertyNodeValue:
    """Tagged value of one property record.

    ``kind`` is one of the module-level kind constants. STRING values hold a
    ``str``, or the raw ``bytes`` when they were not valid UTF-8. Vector
    values are numpy arrays.

    Accessors return None when the value has an incompatible kind. Float
    accessors widen between f32 and f64.
    """

    __slots__ = ('kind', 'value')

    def __init__(self, kind, value=None):
        if kind not in VALUE_KINDS:
            raise ValueError(f"Unknown property value kind: {kind!r}")
        self.kind = kind
        self.value = value

    @classmethod
    def empty(cls):
        return cls(EMPTY)

    @classmethod
    def blob(cls, data=b""):
        return cls(BLOB, bytearray(data))

    @classmethod
    def string(cls, value):
        return cls(STRING, value)

    @classmethod
    def f32(cls, value):
        return cls(F32, float(np.float32(value)))

    @classmethod
    def f64(cls, value):
        return cls(F64, float(value))

    @classmethod
    def i64(cls, value):
        return cls(I64, int(value))

    @classmethod
    def vec_f32(cls, values):
        return cls(VEC_F32, np.asarray(values, dtype=np.float32))

    @classmethod
    def vec_f64(cls, values):
        return cls(VEC_F64, np.asarray(values, dtype=np.float64))

    @classmethod
    def vec_i64(cls, values):
        return cls(VEC_I64, np.asarray(values, dtype=np.int64))

    @property
    def is_empty(self):
        return self.kind == EMPTY

    def get_blob(self):
        return bytes(self.value) if self.kind == BLOB else None

    def get_string(self):
        if self.kind == STRING and isinstance(self.value, str):
            return self.value
        return None

    def get_string_or_raw(self):
        return self.value if self.kind == STRING else None

    def get_f32(self):
        if self.kind in (F32, F64):
            return float(np.float32(self.value))
        return None

    def get_f64(self):
        if self.kind in (F32, F64):
            return float(self.value)
        return None

    def get_i64(self):
        return self.value if self.kind == I64 else None

    def get_vec_f32(self):
        if self.kind in (VEC_F32, VEC_F64):
            return self.value.astype(np.float32, copy=False)
        return None

    def get_vec_f64(self):
        if self.kind in (VEC_F32, VEC_F64):
            return self.value.astype(np.float64, copy=False)
        return None

    def get_vec_i64(self):
        return self.value if self.kind == VEC_I64 else None

    def get_color(self):
        """First three components of a float vector, or None."""
        vec = self.get_vec_f32()
        if vec is None or len(vec) < 3:
            return None
        return tuple(float(v) for v in vec[:3])

    def __eq__(self, other):
        if not isinstance(other, PropertyNodeValue):
            return NotImplemented
        if self.kind != other.kind:
            return False
        if self.kind in (VEC_F32, VEC_F64, VEC_I64):
            return np.array_equal(self.value, other.value)
        return self.value == other.value

    __hash__ = None

    def __repr__(self):
        if self.kind == EMPTY:
            return "PropertyNodeValue(empty)"
        if self.kind in (VEC_F32, VEC_F64, VEC_I64):
            return f"PropertyNodeValue({self.kind}, {self.value.tolist()!r})"
        if self.kind == BLOB:
            return f"PropertyNodeValue(blob, {len(self.value)} bytes)"
        return f"PropertyNodeValue({self.kind}, {self.value!r})"
