"""Top-level scene loading.

Top-level nodes of an FBX 7.x file, in file order::

    FBXHeaderExtension    required
    FileId, CreationTime, Creator, GlobalSettings, Documents, References
                          (skipped)
    Definitions           required before Objects
    Objects
    Connections           required
    Takes                 (skipped)
"""

import logging
import os

from ..fbx_format.fbx_constants import (
    NODE_HEADER_EXTENSION, NODE_DEFINITIONS, NODE_OBJECTS, NODE_CONNECTIONS,
)
from ..fbx_format.fbx_errors import MissingSectionError, UnsupportedDataError
from ..fbx_format.node_loader import NodeLoader, ignore_current_node
from ..load_profiles import LoadProfile, get_profile
from ..utils.image_convert import RawImageConverter
from ..utils.triangulate import triangulate_polygon
from .sg_connections import ConnectionsLoader
from .sg_definitions import DefinitionsLoader
from .sg_header import FbxHeaderExtensionLoader
from .sg_objects import Objects, ObjectsContext, ObjectsLoader


_log = logging.getLogger("fbx_scene.scene")


def _debug_enabled():
    # Activate with FBX_SCENE_DEBUG=1 environment variable
    return os.environ.get('FBX_SCENE_DEBUG', '') == '1'


class FbxScene:
    """A decoded scene.

    Attributes:
        fbx_header_extension: FbxHeaderExtension
        definitions: Definitions (property templates)
        objects: Objects store
        connections: list of Connection, in file order
    """

    __slots__ = ('fbx_header_extension', 'definitions', 'objects', 'connections')

    def __init__(self, fbx_header_extension, definitions, objects, connections):
        self.fbx_header_extension = fbx_header_extension
        self.definitions = definitions
        self.objects = objects
        self.connections = connections

    def triangulate(self, triangulator=triangulate_polygon):
        """Triangulate every mesh of the scene in place.

        A mesh whose layer elements don't fit its polygons is logged and
        left untriangulated; the other meshes are still processed.

        Returns:
            number of meshes triangulated by this call

        Raises:
            UnsupportedDataError: if a mesh has too many triangles
        """
        count = 0
        for mesh in self.objects.meshes.values():
            try:
                triangulated = mesh.triangulate(triangulator)
            except UnsupportedDataError:
                raise
            except ValueError as e:
                _log.error("Cannot triangulate mesh (id=%d, name=`%s`): %s", mesh.id, mesh.name, e)
                continue
            if triangulated:
                count += 1
        _log.debug("Triangulated %d mesh(es)", count)
        return count

    def get_object(self, object_id):
        return self.objects.get(object_id)

    def child_connections(self, object_id):
        return [c for c in self.connections if c.parent == object_id]

    def parent_connections(self, object_id):
        return [c for c in self.connections if c.child == object_id]

    def children_of(self, object_id):
        """Objects connected to ``object_id`` as children.

        Ids without a decoded object (e.g. the root node, id 0) are skipped.
        """
        return self._resolve(c.child for c in self.child_connections(object_id))

    def parents_of(self, object_id):
        """Objects ``object_id`` is connected to as a child."""
        return self._resolve(c.parent for c in self.parent_connections(object_id))

    def _resolve(self, ids):
        result = []
        for object_id in ids:
            obj = self.objects.get(object_id)
            if obj is not None:
                result.append(obj)
        return result

    def __repr__(self):
        return f"FbxScene({self.objects!r}, {len(self.connections)} connections)"


class FbxSceneLoader(NodeLoader):
    """Root loader: reads the whole top level of the node stream."""

    def __init__(self, profile, converter):
        self.profile = profile
        self.converter = converter
        self.fbx_header_extension = None
        self.definitions = None
        self.objects = Objects()
        self.connections = None

    def on_child_node(self, reader, name, properties):
        if name == NODE_HEADER_EXTENSION:
            self.fbx_header_extension = FbxHeaderExtensionLoader().load(reader)
        elif name == NODE_DEFINITIONS:
            self.definitions = DefinitionsLoader(self.profile).load(reader)
        elif name == NODE_OBJECTS:
            if self.definitions is None:
                raise MissingSectionError(
                    NODE_DEFINITIONS, "`Definitions` is required before `Objects` node")
            ctx = ObjectsContext(self.definitions.templates, self.profile, self.converter)
            # Later `Objects` sections add to the same store
            ObjectsLoader(ctx, self.objects).load(reader)
        elif name == NODE_CONNECTIONS:
            self.connections = ConnectionsLoader().load(reader)
        else:
            _log.warning("Unknown node: `%s`", name)
            ignore_current_node(reader)

    def on_finish(self):
        if self.fbx_header_extension is None:
            raise MissingSectionError(NODE_HEADER_EXTENSION)
        if self.connections is None:
            raise MissingSectionError(NODE_CONNECTIONS)
        return FbxScene(self.fbx_header_extension, self.definitions,
                        self.objects, self.connections)


def load_scene(reader, converter=None, profile=None):
    """Load a scene from a node event stream.

    Args:
        reader: EventReader positioned at the start of the stream
        converter: ImageConverter for embedded video content
            (default: RawImageConverter)
        profile: LoadProfile, profile id, or None for the default profile

    Returns:
        FbxScene

    Raises:
        StreamStructureError: malformed event stream
        MissingSectionError: required top-level section missing or out of order
        UnsupportedDataError: mesh too large to triangulate (auto_triangulate only)
        KeyError: unknown profile id
    """
    if not isinstance(profile, LoadProfile):
        profile = get_profile(profile)
    if converter is None:
        converter = RawImageConverter()

    package_log = logging.getLogger("fbx_scene")
    previous_level = package_log.level
    if _debug_enabled():
        package_log.setLevel(logging.DEBUG)
    try:
        return _load(reader, converter, profile)
    finally:
        package_log.setLevel(previous_level)


def _load(reader, converter, profile):
    fbx_version = getattr(reader, 'fbx_version', None)
    if fbx_version is not None and not profile.accepts_fbx_version(fbx_version):
        _log.warning("FBX version %d is outside the range of profile `%s` (%d-%d)",
                     fbx_version, profile.profile_id,
                     profile.min_fbx_version, profile.max_fbx_version)

    scene = FbxSceneLoader(profile, converter).load(reader)
    _log.debug("Loaded %r with profile `%s`", scene, profile.profile_id)

    if profile.triangulation.auto_triangulate:
        scene.triangulate()
    return scene
