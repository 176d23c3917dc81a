"""``Properties70/P`` entries: one named, typed attribute record.

A ``P`` node's cells are laid out as::

    name, type name, label, flags, value cells...

The name is consumed by the owning GenericPropertiesLoader; this module
handles everything after it. Blob records carry a byte length instead of
values, and their payload arrives in ``BinaryData`` child nodes that are
concatenated in order.
"""

import logging

from ..fbx_format.fbx_constants import (
    CELL_I16, CELL_I32, CELL_I64, CELL_F32, CELL_F64, CELL_STRING,
    NODE_BINARY_DATA, PROPERTY_TYPE_BLOB,
)
from ..fbx_format.node_loader import NodeLoader, ignore_current_node
from .flags import PropertyFlags
from .property_value import PropertyNodeValue


_log = logging.getLogger("fbx_scene.property")


class PropertyNode:
    """A decoded property record."""

    __slots__ = ('type_name', 'label', 'flags', 'value')

    def __init__(self, type_name, label, flags, value):
        self.type_name = type_name
        self.label = label
        self.flags = flags
        self.value = value

    def __repr__(self):
        return (
            f"PropertyNode({self.type_name!r}, {self.label!r}, "
            f"{self.flags!r}, {self.value!r})"
        )


def _collect(first, rest, accessor):
    values = [first]
    for cell in rest:
        value = getattr(cell, accessor)()
        if value is None:
            break
        values.append(value)
    return values


def parse_property_value(cells):
    """Decode the value cells of a non-blob property.

    The first cell decides the shape: an integer cell and every following
    integer cell become I64 (one value) or VEC_I64; f32 and f64 cells work
    the same way with float widening; a string becomes STRING; no cell at
    all is EMPTY.

    Args:
        cells: iterator positioned at the first value cell

    Returns:
        PropertyNodeValue, or None for an unsupported leading cell type
    """
    first = next(cells, None)
    if first is None:
        return PropertyNodeValue.empty()

    code = first.type_code
    if code in (CELL_I16, CELL_I32, CELL_I64):
        values = _collect(first.as_i64(), cells, "as_i64")
        if len(values) == 1:
            return PropertyNodeValue.i64(values[0])
        return PropertyNodeValue.vec_i64(values)
    if code == CELL_F32:
        values = _collect(first.value, cells, "as_f32")
        if len(values) == 1:
            return PropertyNodeValue.f32(values[0])
        return PropertyNodeValue.vec_f32(values)
    if code == CELL_F64:
        values = _collect(first.value, cells, "as_f64")
        if len(values) == 1:
            return PropertyNodeValue.f64(values[0])
        return PropertyNodeValue.vec_f64(values)
    if code == CELL_STRING:
        # Multi-string values are not written by any known exporter.
        return PropertyNodeValue.string(first.get_string_or_raw())

    # bool, raw binary and arrays never appear as P values
    # (booleans are written as integers).
    _log.error("Unexpected (unsupported) property node value: %r", first)
    return None


class PropertyNodeLoader(NodeLoader):
    """Loads one ``P`` node once its name has been taken off the cells."""

    def __init__(self, type_name, label, flags, value, blob_length=None):
        self.type_name = type_name
        self.label = label
        self.flags = flags
        self.value = value
        self.blob_length = blob_length

    @property
    def is_blob(self):
        return self.blob_length is not None

    @classmethod
    def from_properties(cls, cells):
        """Create a loader from the remaining cells of a ``P`` node.

        Args:
            cells: iterator over the cells after the property name

        Returns:
            PropertyNodeLoader, or None if the record cannot be decoded
        """
        type_name = _next_string(cells)
        if type_name is None:
            _log.error("Cannot get property node type name")
            return None
        label = _next_string(cells)
        if label is None:
            _log.error("Cannot get property node label")
            return None
        flags_str = _next_string(cells)
        if flags_str is None:
            _log.error("Cannot get property node flags")
            return None
        flags = PropertyFlags.from_string(flags_str)

        if PROPERTY_TYPE_BLOB in (type_name, label):
            length_cell = next(cells, None)
            length = length_cell.as_i64() if length_cell is not None else None
            if length is None or length < 0:
                _log.error("Cannot get length of a binary property node")
                return None
            return cls(type_name, label, flags, PropertyNodeValue.blob(), blob_length=length)

        value = parse_property_value(cells)
        if value is None:
            return None
        return cls(type_name, label, flags, value)

    def on_child_node(self, reader, name, properties):
        if not self.is_blob:
            _log.warning("Unnecessary child node: `P/%s`", name)
        elif name == NODE_BINARY_DATA:
            cell = properties.first()
            data = cell.get_binary() if cell is not None else None
            if data is None:
                _log.error("Invalid node property: Cannot get binary data from `P/BinaryData`")
            else:
                self.value.value.extend(data)
        else:
            _log.warning("Unknown node: `P/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.is_blob and len(self.value.value) != self.blob_length:
            _log.warning(
                "Blob property length mismatch: declared %d bytes, got %d",
                self.blob_length, len(self.value.value),
            )
        return PropertyNode(self.type_name, self.label, self.flags, self.value)


def _next_string(cells):
    cell = next(cells, None)
    return cell.get_string() if cell is not None else None
