"""fbx_scene: decode FBX 7.x node streams into a typed scene graph.

Usage:
    from fbx_scene import EventReader, load_scene

    scene = load_scene(EventReader(events))
    scene.triangulate()
    for mesh in scene.objects.meshes.values():
        for material in scene.children_of(mesh.id):
            ...

Debug logging for a load is enabled with the FBX_SCENE_DEBUG=1
environment variable.
"""

from .fbx_format.fbx_errors import (
    FbxLoadError, StreamStructureError, MissingSectionError, UnsupportedDataError,
)
from .fbx_format.fbx_events import (
    Property, PropertyList, StartNode, EndNode, EndFbx, EventReader,
    FbxNode, flatten_nodes,
)
from .load_profiles import LoadProfile, get_profile, register_profile
from .scene_graph.sg_geometry import Mesh, MappingMode, ReferenceMode, VertexIndex
from .scene_graph.sg_objects import Objects, UnknownObject
from .scene_graph.sg_scene import FbxScene, load_scene
from .utils.image_convert import ImageConverter, RawImage, RawImageConverter
from .utils.triangulate import triangulate_polygon


__version__ = "0.1.0"

__all__ = [
    "load_scene", "FbxScene", "Objects", "UnknownObject",
    "Mesh", "MappingMode", "ReferenceMode", "VertexIndex",
    "Property", "PropertyList", "StartNode", "EndNode", "EndFbx", "EventReader",
    "FbxNode", "flatten_nodes",
    "FbxLoadError", "StreamStructureError", "MissingSectionError", "UnsupportedDataError",
    "LoadProfile", "get_profile", "register_profile",
    "ImageConverter", "RawImage", "RawImageConverter", "triangulate_polygon",
]
