"""Common machinery for node loaders.

Every section of an FBX file is read by a loader object that accumulates
state while the children of its node stream past, then turns that state
into a result when the node closes:

    class CountLoader(NodeLoader):
        def __init__(self):
            self.count = None

        def on_child_node(self, reader, name, properties):
            if name == "Count":
                self.count = get_first(properties, "get_i32")
            ignore_current_node(reader)

        def on_finish(self):
            return self.count

Each ``on_child_node`` must consume the child's whole subtree before it
returns (either by loading it with another loader or with
``ignore_current_node``); otherwise every following sibling is read at the
wrong depth.
"""

import logging

import numpy as np

from .fbx_constants import NAME_CLASS_SEPARATOR
from .fbx_errors import StreamStructureError
from .fbx_events import StartNode, EndNode, EndFbx


_log = logging.getLogger("fbx_scene.loader")


class NodeLoader:
    """Base class for loaders driven by the node event stream."""

    def load(self, reader):
        """Consume the current node's children and return ``on_finish()``.

        Args:
            reader: EventReader positioned just after the node's StartNode
                (or at the beginning of the stream for the root loader)
        """
        while True:
            event = reader.next()
            if isinstance(event, StartNode):
                self.on_child_node(reader, event.name, event.properties)
            elif isinstance(event, (EndNode, EndFbx)):
                return self.on_finish()
            else:
                raise StreamStructureError(f"Unexpected event: {event!r}")

    def on_child_node(self, reader, name, properties):
        """Handle one child node. The default skips its subtree."""
        ignore_current_node(reader)

    def on_finish(self):
        """Turn the accumulated state into the loader's result."""
        raise NotImplementedError


def ignore_current_node(reader):
    """Skip the rest of the node whose StartNode was just read.

    Raises:
        StreamStructureError: if the stream ends before the node closes
    """
    level = 1
    while True:
        event = reader.next()
        if isinstance(event, StartNode):
            level += 1
        elif isinstance(event, EndNode):
            level -= 1
            if level == 0:
                return
        elif isinstance(event, EndFbx):
            raise StreamStructureError(
                f"Node stream ended inside a node ({level} node(s) left open)"
            )


def get_first(properties, accessor):
    """Apply a Property accessor (by name) to the first cell of ``properties``.

    Returns None when there are no cells or the accessor rejects the cell.
    """
    cell = properties.first()
    if cell is None:
        return None
    return getattr(cell, accessor)()


def check_node_version(properties, expected, node_path):
    """Validate a ``Version``-style child against the expected value(s).

    A mismatch is only a warning: structure, not version, decides whether a
    node can be read.

    Args:
        properties: PropertyList of the version node
        expected: int, or a collection of accepted ints
        node_path: node path used in log messages

    Returns:
        the version number, or None if the cell was not an int32
    """
    version = get_first(properties, "get_i32")
    if version is None:
        _log.error("Invalid property at `%s/Version`: type error", node_path)
        return None
    accepted = (expected,) if isinstance(expected, int) else tuple(expected)
    if version not in accepted:
        _log.warning("Maybe unsupported version of `%s` node: ver=%d", node_path, version)
    return version


def check_node_type(properties, expected, node_path):
    """Validate a ``Type`` child (e.g. ``"Clip"``); a mismatch only warns."""
    type_name = get_first(properties, "get_string")
    if type_name is None:
        _log.error("Invalid property at `%s/Type`: type error", node_path)
    elif type_name != expected:
        _log.warning("Maybe unsupported type of `%s` node: type=%s", node_path, type_name)
    return type_name


def separate_name_class(name_class):
    """Split an object's ``"name\\x00\\x01class"`` string.

    Returns:
        (name, class) tuple, or None when the separator is missing
    """
    if name_class is None:
        return None
    pos = name_class.find(NAME_CLASS_SEPARATOR)
    if pos < 0:
        return None
    return name_class[:pos], name_class[pos + len(NAME_CLASS_SEPARATOR):]


def vectors_from_array(values, width):
    """Group a flat float array into an (N, width) array.

    Trailing values that do not fill a whole vector are dropped. An empty or
    missing array gives None.
    """
    if values is None or len(values) == 0:
        return None
    count = len(values) // width
    return np.ascontiguousarray(values[:count * width]).reshape(count, width)


def matrix_from_array(values):
    """First 16 values of a float array as a 4x4 row-major matrix, or None."""
    if values is None or len(values) < 16:
        return None
    return np.array(values[:16], dtype=np.float32).reshape(4, 4)
