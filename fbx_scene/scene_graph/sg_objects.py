"""``/Objects`` section: identity extraction, dispatch and the object store.

Every child of ``/Objects`` starts with three cells::

    id (int64), "name\\x00\\x01Class", "Subclass"

The node name plus (class, subclass) select a decoder. Pairs with no
decoder become UnknownObject records and their subtree is skipped, so
nothing with a valid identity is silently lost. Objects whose decoder
fails (missing required fields) are dropped with an error log.
"""

import logging

from ..fbx_format.node_loader import NodeLoader, ignore_current_node, separate_name_class
from .sg_collections import DisplayLayerLoader
from .sg_deformers import SkinLoader, ClusterLoader, BlendShapeLoader, BlendShapeChannelLoader
from .sg_geometry import MeshLoader, ShapeLoader
from .sg_materials import MaterialLoader, TextureLoader, VideoLoader
from .sg_model import ModelLoader, PoseLoader, MODEL_SUBCLASSES, POSE_SUBCLASSES
from .sg_node_attributes import LimbNodeAttributeLoader, NullNodeAttributeLoader


_log = logging.getLogger("fbx_scene.objects")


class ObjectProperties:
    """Identity of the object node being dispatched."""

    __slots__ = ('id', 'name', 'class_name', 'subclass')

    def __init__(self, object_id, name, class_name, subclass):
        self.id = object_id
        self.name = name
        self.class_name = class_name
        self.subclass = subclass

    @classmethod
    def from_node_properties(cls, properties):
        """Read id, name-class and subclass cells.

        Returns:
            ObjectProperties, or None if any of the three is missing or
            has the wrong type
        """
        cells = properties.iter()
        cell = next(cells, None)
        object_id = cell.get_i64() if cell is not None else None
        cell = next(cells, None)
        name_class = separate_name_class(cell.get_string()) if cell is not None else None
        cell = next(cells, None)
        subclass = cell.get_string() if cell is not None else None

        if object_id is None or name_class is None or subclass is None:
            _log.error("Cannot get object properties")
            return None
        name, class_name = name_class
        return cls(object_id, name, class_name, subclass)

    def __repr__(self):
        return (
            f"ObjectProperties(id={self.id}, name={self.name!r}, "
            f"class={self.class_name!r}, subclass={self.subclass!r})"
        )


class UnknownObject:
    """An object with a valid identity but no decoder."""

    __slots__ = ('id', 'name', 'class_name', 'subclass')

    def __init__(self, object_id, name, class_name, subclass):
        self.id = object_id
        self.name = name
        self.class_name = class_name
        self.subclass = subclass

    @classmethod
    def from_object_properties(cls, obj_props):
        return cls(obj_props.id, obj_props.name, obj_props.class_name, obj_props.subclass)

    def __repr__(self):
        return (
            f"UnknownObject(id={self.id}, name={self.name!r}, "
            f"class={self.class_name!r}, subclass={self.subclass!r})"
        )


class ObjectsContext:
    """Read-only state shared by all object decoders of one scene."""

    __slots__ = ('templates', 'profile', 'converter')

    def __init__(self, templates, profile, converter):
        self.templates = templates
        self.profile = profile
        self.converter = converter

    def template(self, object_type, template_name):
        return self.templates.get(object_type, template_name)


# Names of the per-type maps of Objects
OBJECT_MAPS = (
    'meshes', 'shapes', 'materials', 'textures', 'videos',
    'skins', 'clusters', 'blend_shapes', 'blend_shape_channels',
    'poses', 'limb_node_attributes', 'null_node_attributes',
    'models', 'display_layers', 'unknown',
)


class Objects:
    """Decoded objects, one id-keyed dict per concrete type.

    An id lives in at most one map: adding an object whose id is already
    held by another map removes the older entry.
    """

    __slots__ = OBJECT_MAPS + ('_owner',)

    def __init__(self):
        for map_name in OBJECT_MAPS:
            setattr(self, map_name, {})
        self._owner = {}

    def add(self, map_name, obj):
        """Store ``obj`` under its id in the map named ``map_name``."""
        if map_name not in OBJECT_MAPS:
            raise KeyError(f"Unknown object map: {map_name!r}")
        previous = self._owner.get(obj.id)
        if previous is not None:
            if previous != map_name:
                _log.warning(
                    "Object id %d moved from `%s` to `%s`", obj.id, previous, map_name)
                del getattr(self, previous)[obj.id]
            else:
                _log.warning("Duplicate object id %d in `%s`", obj.id, map_name)
        getattr(self, map_name)[obj.id] = obj
        self._owner[obj.id] = map_name

    def get(self, object_id):
        """Object with the given id from whichever map holds it, or None."""
        map_name = self._owner.get(object_id)
        if map_name is None:
            return None
        return getattr(self, map_name)[object_id]

    def kind_of(self, object_id):
        """Name of the map holding ``object_id``, or None."""
        return self._owner.get(object_id)

    def __contains__(self, object_id):
        return object_id in self._owner

    def __len__(self):
        return len(self._owner)

    def __iter__(self):
        return iter(self._owner)

    def __repr__(self):
        counts = ", ".join(
            f"{name}={len(getattr(self, name))}"
            for name in OBJECT_MAPS if getattr(self, name)
        )
        return f"Objects({counts})"


def select_loader(node_name, obj_props):
    """Pick the decoder for an object node.

    Returns:
        (map name, loader class) tuple, or None for unknown combinations
    """
    class_name = obj_props.class_name
    subclass = obj_props.subclass

    if node_name == "Deformer":
        if class_name == "Deformer":
            if subclass == "Skin":
                return 'skins', SkinLoader
            if subclass == "BlendShape":
                return 'blend_shapes', BlendShapeLoader
        elif class_name == "SubDeformer":
            if subclass == "Cluster":
                return 'clusters', ClusterLoader
            if subclass == "BlendShapeChannel":
                return 'blend_shape_channels', BlendShapeChannelLoader
    elif node_name == "Geometry":
        if subclass == "Mesh":
            return 'meshes', MeshLoader
        if subclass == "Shape":
            return 'shapes', ShapeLoader
    elif node_name == "NodeAttribute":
        if subclass == "LimbNode":
            return 'limb_node_attributes', LimbNodeAttributeLoader
        if subclass == "Null":
            return 'null_node_attributes', NullNodeAttributeLoader
    elif node_name == "CollectionExclusive":
        if subclass == "DisplayLayer":
            return 'display_layers', DisplayLayerLoader
    elif node_name == "Model":
        if subclass in MODEL_SUBCLASSES:
            return 'models', ModelLoader
    elif node_name == "Pose":
        if subclass in POSE_SUBCLASSES:
            return 'poses', PoseLoader
    elif node_name == "Material":
        return 'materials', MaterialLoader
    elif node_name == "Texture":
        return 'textures', TextureLoader
    elif node_name == "Video":
        if subclass == "Clip":
            return 'videos', VideoLoader
    return None


class ObjectsLoader(NodeLoader):
    """Loads ``/Objects`` into an Objects store."""

    def __init__(self, ctx, objects=None):
        self.ctx = ctx
        self.objects = objects if objects is not None else Objects()

    def on_child_node(self, reader, name, properties):
        obj_props = ObjectProperties.from_node_properties(properties)
        if obj_props is None:
            ignore_current_node(reader)
            return

        selected = select_loader(name, obj_props)
        if selected is None:
            _log.warning(
                "Unknown object: `/Objects/%s` (class=%s, subclass=%s)",
                name, obj_props.class_name, obj_props.subclass)
            self.objects.add('unknown', UnknownObject.from_object_properties(obj_props))
            ignore_current_node(reader)
            return

        map_name, loader_cls = selected
        obj = loader_cls(obj_props, self.ctx).load(reader)
        if obj is not None:
            self.objects.add(map_name, obj)

    def on_finish(self):
        _log.debug("Objects: %r", self.objects)
        return self.objects
