"""``/Objects/NodeAttribute`` decoding (LimbNode and Null attributes)."""

import logging

from ..fbx_format.fbx_constants import NODE_PROPERTIES70
from ..fbx_format.node_loader import NodeLoader, ignore_current_node, get_first
from ..property import GenericPropertiesLoader, get_value_or_default


_log = logging.getLogger("fbx_scene.node_attributes")


# Values of the `TypeFlags` node
NODE_ATTRIBUTE_TYPES = (
    "Unknown", "Null", "Marker", "Skeleton", "Mesh", "Nurbs", "Patch",
    "Camera", "CameraStereo", "CameraSwitcher", "Light",
    "OpticalReference", "OpticalMarker", "NurbsCurve", "TrimNurbsSurface",
    "Boundary", "NurbsSurface", "Shape", "LODGroup", "SubDiv",
    "CachedEffect", "Line",
)
NODE_ATTRIBUTE_UNKNOWN = "Unknown"


def node_attribute_type(name):
    """Validate a ``TypeFlags`` value; unknown values map to "Unknown"."""
    if name in NODE_ATTRIBUTE_TYPES:
        return name
    _log.error(
        "Invalid value (`%s`) as `/Objects/NodeAttribute/TypeFlags`, treat as `Unknown`", name)
    return NODE_ATTRIBUTE_UNKNOWN


# Look of null nodes
NULL_LOOK_NONE = "None"
NULL_LOOK_CROSS = "Cross"
_NULL_LOOKS = (NULL_LOOK_NONE, NULL_LOOK_CROSS)


class LimbNodeAttribute:
    __slots__ = ('id', 'name', 'type_flags', 'size')

    def __init__(self, object_id, name, type_flags, size):
        self.id = object_id
        self.name = name
        self.type_flags = type_flags
        self.size = size

    def __repr__(self):
        return f"LimbNodeAttribute(id={self.id}, {self.type_flags}, size={self.size})"


class NullNodeAttribute:
    __slots__ = ('id', 'name', 'type_flags', 'color', 'size', 'look')

    def __init__(self, object_id, name, color, size, look, type_flags=None):
        self.id = object_id
        self.name = name
        self.type_flags = type_flags
        self.color = color
        self.size = size
        self.look = look

    def __repr__(self):
        return f"NullNodeAttribute(id={self.id}, look={self.look}, size={self.size})"


class _NodeAttributeLoader(NodeLoader):
    """Shared child handling: ``TypeFlags`` and ``Properties70``."""

    node_path = "/Objects/NodeAttribute"

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.properties = None
        self.type_flags = None

    def on_child_node(self, reader, name, properties):
        if name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
            return
        if name == "TypeFlags":
            value = get_first(properties, "get_string")
            self.type_flags = node_attribute_type(value) if value is not None else None
        else:
            _log.warning("Unknown node: `%s/%s`", self.node_path, name)
        ignore_current_node(reader)

    def _required_missing(self):
        _log.error("Required property not found for `%s` (id=%d)",
                   self.node_path, self.obj_props.id)


class LimbNodeAttributeLoader(_NodeAttributeLoader):

    node_path = "/Objects/NodeAttribute(LimbNode)"

    def on_finish(self):
        defaults = self.ctx.template("NodeAttribute", "FbxSkeleton")
        size = get_value_or_default(self.properties, defaults, "Size", "get_f64")
        if self.type_flags is None or size is None:
            self._required_missing()
            return None
        return LimbNodeAttribute(self.obj_props.id, self.obj_props.name, self.type_flags, size)


class NullNodeAttributeLoader(_NodeAttributeLoader):

    node_path = "/Objects/NodeAttribute(Null)"

    def on_finish(self):
        defaults = self.ctx.template("NodeAttribute", "FbxNull")
        color = get_value_or_default(self.properties, defaults, "Color", "get_color")
        size = get_value_or_default(self.properties, defaults, "Size", "get_f64")
        look = get_value_or_default(self.properties, defaults, "Look", "get_i64")
        if look is not None:
            look = _NULL_LOOKS[look] if 0 <= look < len(_NULL_LOOKS) else None
        if color is None or size is None or look is None:
            self._required_missing()
            return None
        return NullNodeAttribute(self.obj_props.id, self.obj_props.name,
                                 color, size, look, self.type_flags)
