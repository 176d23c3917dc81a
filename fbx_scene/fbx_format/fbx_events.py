"""Node event stream consumed by the scene loaders.

The binary tokenizer is not part of this package. Anything that can turn an
FBX file into a flat sequence of ``StartNode`` / ``EndNode`` / ``EndFbx``
events carrying typed property cells can drive the loaders. ``FbxNode`` and
``flatten_nodes`` build such a stream from an already decoded tree, which is
also what the tests use.

Usage:
    reader = EventReader.from_nodes([
        FbxNode("FBXHeaderExtension"),
        FbxNode("Connections", children=[
            FbxNode("C", [Property.string("OO"), Property.int64(1), Property.int64(0)]),
        ]),
    ])
    scene = load_scene(reader)
"""

import numpy as np

from .fbx_constants import (
    CELL_I16, CELL_BOOL, CELL_I32, CELL_I64, CELL_F32, CELL_F64,
    CELL_STRING, CELL_BINARY,
    CELL_VEC_F32, CELL_VEC_F64, CELL_VEC_I64, CELL_VEC_I32, CELL_VEC_BOOL,
    SCALAR_INT_CELLS, ARRAY_CELLS, ALL_CELLS, ARRAY_DTYPES,
)
from .fbx_errors import StreamStructureError


_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


class Property:
    """One typed property cell of a node.

    Scalars are stored as Python ``int``/``float``/``bool``, strings as
    ``str`` (or raw ``bytes`` when they are not valid UTF-8), binary blobs as
    ``bytes`` and arrays as numpy arrays of the cell's dtype.

    ``get_*`` accessors only succeed for the exact cell type. ``as_*``
    accessors widen between compatible types.
    """

    __slots__ = ('type_code', 'value')

    def __init__(self, type_code, value):
        if type_code not in ALL_CELLS:
            raise ValueError(f"Unknown property type code: {type_code!r}")
        if type_code in ARRAY_CELLS:
            value = np.asarray(value, dtype=ARRAY_DTYPES[type_code]).reshape(-1)
        elif type_code == CELL_STRING and isinstance(value, (bytes, bytearray)):
            try:
                value = bytes(value).decode("utf-8")
            except UnicodeDecodeError:
                value = bytes(value)
        elif type_code == CELL_BINARY:
            value = bytes(value)
        self.type_code = type_code
        self.value = value

    # -- constructors -----------------------------------------------------

    @classmethod
    def int16(cls, value):
        return cls(CELL_I16, int(value))

    @classmethod
    def boolean(cls, value):
        return cls(CELL_BOOL, bool(value))

    @classmethod
    def int32(cls, value):
        return cls(CELL_I32, int(value))

    @classmethod
    def int64(cls, value):
        return cls(CELL_I64, int(value))

    @classmethod
    def float32(cls, value):
        return cls(CELL_F32, float(np.float32(value)))

    @classmethod
    def float64(cls, value):
        return cls(CELL_F64, float(value))

    @classmethod
    def string(cls, value):
        return cls(CELL_STRING, value)

    @classmethod
    def binary(cls, value):
        return cls(CELL_BINARY, value)

    @classmethod
    def vec_f32(cls, values):
        return cls(CELL_VEC_F32, values)

    @classmethod
    def vec_f64(cls, values):
        return cls(CELL_VEC_F64, values)

    @classmethod
    def vec_i32(cls, values):
        return cls(CELL_VEC_I32, values)

    @classmethod
    def vec_i64(cls, values):
        return cls(CELL_VEC_I64, values)

    @classmethod
    def vec_bool(cls, values):
        return cls(CELL_VEC_BOOL, values)

    # -- exact accessors --------------------------------------------------

    def get_i16(self):
        return self.value if self.type_code == CELL_I16 else None

    def get_i32(self):
        return self.value if self.type_code == CELL_I32 else None

    def get_i64(self):
        return self.value if self.type_code == CELL_I64 else None

    def get_f32(self):
        return self.value if self.type_code == CELL_F32 else None

    def get_f64(self):
        return self.value if self.type_code == CELL_F64 else None

    def get_bool(self):
        return self.value if self.type_code == CELL_BOOL else None

    def get_string(self):
        """Return the string value, or None for non-strings and undecodable bytes."""
        if self.type_code == CELL_STRING and isinstance(self.value, str):
            return self.value
        return None

    def get_string_or_raw(self):
        """Return the string value as ``str`` or, if not UTF-8, as raw ``bytes``."""
        return self.value if self.type_code == CELL_STRING else None

    def get_binary(self):
        return self.value if self.type_code == CELL_BINARY else None

    def get_vec_i32(self):
        return self.value if self.type_code == CELL_VEC_I32 else None

    # -- widening accessors -----------------------------------------------

    def as_i64(self):
        """Integer value of any integer scalar cell."""
        if self.type_code in SCALAR_INT_CELLS:
            return int(self.value)
        return None

    def as_f32(self):
        if self.type_code in (CELL_F32, CELL_F64):
            return float(np.float32(self.value))
        return None

    def as_f64(self):
        if self.type_code in (CELL_F32, CELL_F64):
            return float(self.value)
        return None

    def as_vec_f32(self):
        if self.type_code in (CELL_VEC_F32, CELL_VEC_F64):
            return self.value.astype(np.float32, copy=False)
        return None

    def as_vec_f64(self):
        if self.type_code in (CELL_VEC_F32, CELL_VEC_F64):
            return self.value.astype(np.float64, copy=False)
        return None

    def as_vec_i64(self):
        if self.type_code in (CELL_VEC_I32, CELL_VEC_I64):
            return self.value.astype(np.int64, copy=False)
        return None

    def extract_vec_i32(self):
        """Integer array narrowed to int32.

        Returns None for non-integer arrays or when an ``l`` array holds
        values outside the int32 range.
        """
        if self.type_code == CELL_VEC_I32:
            return self.value
        if self.type_code == CELL_VEC_I64:
            if self.value.size and (self.value.min() < _INT32_MIN or self.value.max() > _INT32_MAX):
                return None
            return self.value.astype(np.int32)
        return None

    def __repr__(self):
        if self.type_code in ARRAY_CELLS:
            return f"Property({self.type_code!r}, len={len(self.value)})"
        if self.type_code == CELL_BINARY:
            return f"Property({self.type_code!r}, {len(self.value)} bytes)"
        return f"Property({self.type_code!r}, {self.value!r})"


class PropertyList:
    """The property cells of one node, iterated front to back."""

    __slots__ = ('_cells',)

    def __init__(self, cells=()):
        self._cells = tuple(cells)

    def iter(self):
        return iter(self._cells)

    def __iter__(self):
        return iter(self._cells)

    def __len__(self):
        return len(self._cells)

    def __getitem__(self, index):
        return self._cells[index]

    def first(self):
        """First cell, or None for an empty list."""
        return self._cells[0] if self._cells else None

    def __repr__(self):
        return f"PropertyList({list(self._cells)!r})"


class StartNode:
    """A node begins. Its children follow until the matching ``EndNode``."""

    __slots__ = ('name', 'properties')

    def __init__(self, name, properties=None):
        self.name = name
        if not isinstance(properties, PropertyList):
            properties = PropertyList(properties or ())
        self.properties = properties

    def __repr__(self):
        return f"StartNode({self.name!r}, {len(self.properties)} props)"


class EndNode:
    """The most recently started node ends."""

    __slots__ = ()

    def __repr__(self):
        return "EndNode()"


class EndFbx:
    """End of the whole stream."""

    __slots__ = ()

    def __repr__(self):
        return "EndFbx()"


class EventReader:
    """Single-pass cursor over a node event stream.

    Wraps any iterable of events. If the iterable runs out without an
    explicit ``EndFbx``, one is synthesized; reading past that point is a
    stream error.
    """

    def __init__(self, events, fbx_version=7400):
        self.fbx_version = fbx_version
        self._events = iter(events)
        self._finished = False
        self.position = 0   # number of events handed out so far

    @classmethod
    def from_nodes(cls, nodes, fbx_version=7400):
        """Build a reader over the flattened event stream of ``nodes``."""
        return cls(flatten_nodes(nodes), fbx_version=fbx_version)

    def next(self):
        """Return the next event."""
        if self._finished:
            raise StreamStructureError("Attempt to read past the end of the node stream")
        event = next(self._events, None)
        if event is None:
            event = EndFbx()
        if isinstance(event, EndFbx):
            self._finished = True
        elif not isinstance(event, (StartNode, EndNode)):
            raise StreamStructureError(f"Unexpected event in node stream: {event!r}")
        self.position += 1
        return event

    @property
    def finished(self):
        return self._finished


class FbxNode:
    """An already decoded node: name, property cells and child nodes."""

    __slots__ = ('name', 'properties', 'children')

    def __init__(self, name, properties=(), children=()):
        self.name = name
        self.properties = list(properties)
        self.children = list(children)

    def __repr__(self):
        return (
            f"FbxNode({self.name!r}, props={len(self.properties)}, "
            f"children={len(self.children)})"
        )


def iter_node_events(node):
    """Yield the events of one node and its subtree."""
    yield StartNode(node.name, node.properties)
    for child in node.children:
        yield from iter_node_events(child)
    yield EndNode()


def flatten_nodes(nodes, end=True):
    """Yield the event stream of a list of top-level nodes.

    Args:
        nodes: iterable of FbxNode
        end: append the terminating ``EndFbx`` event

    Yields:
        StartNode, EndNode and (optionally) EndFbx events
    """
    for node in nodes:
        yield from iter_node_events(node)
    if end:
        yield EndFbx()
