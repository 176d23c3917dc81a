"""``/Objects/CollectionExclusive`` decoding (display layers)."""

import logging

from ..fbx_format.fbx_constants import NODE_PROPERTIES70
from ..fbx_format.node_loader import NodeLoader, ignore_current_node
from ..property import GenericPropertiesLoader, get_value_or_default


_log = logging.getLogger("fbx_scene.collections")


class DisplayLayer:
    __slots__ = ('id', 'name', 'color', 'show', 'freeze', 'lod_box')

    def __init__(self, object_id, name, color, show, freeze, lod_box):
        self.id = object_id
        self.name = name
        self.color = color
        self.show = show
        self.freeze = freeze
        self.lod_box = lod_box

    def __repr__(self):
        return f"DisplayLayer(id={self.id}, name={self.name!r}, show={self.show})"


class DisplayLayerLoader(NodeLoader):

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.properties = None

    def on_child_node(self, reader, name, properties):
        if name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
            return
        _log.warning("Unknown node: `/Objects/CollectionExclusive(DisplayLayer)/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        defaults = self.ctx.template("CollectionExclusive", "FbxDisplayLayer")
        props = self.properties
        color = get_value_or_default(props, defaults, "Color", "get_color")
        show, freeze, lod_box = (
            get_value_or_default(props, defaults, key, "get_i64")
            for key in ("Show", "Freeze", "LODBox")
        )
        if any(v is None for v in (color, show, freeze, lod_box)):
            _log.error(
                "Required property not found for `/Objects/CollectionExclusive(DisplayLayer)` "
                "(id=%d)", self.obj_props.id)
            return None
        return DisplayLayer(self.obj_props.id, self.obj_props.name,
                            color, show != 0, freeze != 0, lod_box != 0)
