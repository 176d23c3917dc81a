"""``/Connections`` section: typed edges between object ids."""

import logging

from ..fbx_format.node_loader import NodeLoader, ignore_current_node


_log = logging.getLogger("fbx_scene.connections")


# Connection type -> (child is property, parent is property)
CONNECTION_TYPES = {
    "OO": (False, False),
    "OP": (False, True),
    "PO": (True, False),
    "PP": (True, True),
}


class Connection:
    """A connection from a child object (or property) to a parent."""

    __slots__ = ('parent', 'child', 'attribute', 'parent_is_property', 'child_is_property')

    def __init__(self, parent, child, attribute=None,
                 parent_is_property=False, child_is_property=False):
        self.parent = parent
        self.child = child
        self.attribute = attribute
        self.parent_is_property = parent_is_property
        self.child_is_property = child_is_property

    @classmethod
    def from_node_properties(cls, properties):
        """Decode a ``C`` node: type, child id, parent id[, attribute name].

        Returns:
            Connection, or None if the cells are invalid
        """
        cells = properties.iter()
        type_cell = next(cells, None)
        type_name = type_cell.get_string() if type_cell is not None else None
        connection_type = CONNECTION_TYPES.get(type_name)
        if type_name is not None and connection_type is None:
            _log.warning("Invalid connection type: `%s`", type_name)

        child_cell = next(cells, None)
        child = child_cell.get_i64() if child_cell is not None else None
        parent_cell = next(cells, None)
        parent = parent_cell.get_i64() if parent_cell is not None else None
        attr_cell = next(cells, None)
        attribute = attr_cell.get_string() if attr_cell is not None else None

        if connection_type is None or child is None or parent is None:
            return None
        child_is_prop, parent_is_prop = connection_type
        return cls(parent, child, attribute, parent_is_prop, child_is_prop)

    def has_attribute(self, name):
        return self.attribute == name

    def __repr__(self):
        kind = ("P" if self.child_is_property else "O") + ("P" if self.parent_is_property else "O")
        attr = f", {self.attribute!r}" if self.attribute is not None else ""
        return f"Connection({kind}, child={self.child}, parent={self.parent}{attr})"


class ConnectionsLoader(NodeLoader):

    def __init__(self):
        self.connections = []

    def on_child_node(self, reader, name, properties):
        if name == "C":
            connection = Connection.from_node_properties(properties)
            if connection is not None:
                self.connections.append(connection)
            else:
                _log.error("Invalid properties at `/Connections/C`")
        else:
            _log.warning("Unknown node: `/Connections/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        return self.connections
