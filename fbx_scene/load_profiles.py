"""Load profiles for FBX scene decoding.

A profile collects the few knobs the loaders consult: which node version
numbers are expected (a mismatch is only logged, never fatal) and whether
meshes are triangulated right after loading.

Profiles are registered in a global dict and selected by id when calling
``load_scene``. The default profile matches FBX 7.x files written by the
2014-2020 SDKs.

Adding a profile:
    1. Load reference files with FBX_SCENE_DEBUG=1 and note the version warnings
    2. Create a LoadProfile with the observed version numbers
    3. Call register_profile() to add it to the registry
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass
class VersionConfig:
    """Expected values of the per-node ``Version`` children.

    Each entry is a tuple of accepted version numbers.
    """

    definitions: Tuple[int, ...] = (100,)
    geometry: Tuple[int, ...] = (124,)        # Geometry(Mesh)/GeometryVersion
    layer: Tuple[int, ...] = (100,)           # Geometry(Mesh)/Layer
    layer_element: Tuple[int, ...] = (101, 102)
    shape: Tuple[int, ...] = (100,)
    material: Tuple[int, ...] = (102,)
    texture: Tuple[int, ...] = (202,)
    model: Tuple[int, ...] = (232,)
    deformer: Tuple[int, ...] = (100,)        # BlendShape, BlendShapeChannel, Cluster
    skin: Tuple[int, ...] = (101,)
    pose: Tuple[int, ...] = (100,)


@dataclass
class TriangulationConfig:
    """Post-processing of loaded meshes."""

    # Triangulate every mesh with the reference triangulator as soon as the
    # scene is loaded. Off by default: consumers usually pick their own
    # triangulator through FbxScene.triangulate().
    auto_triangulate: bool = False


@dataclass
class LoadProfile:
    """Complete set of loader settings."""

    profile_id: str = "fbx_7x"
    profile_name: str = "FBX 7.x (binary)"

    # Accepted range of the file's FBX version (e.g. 7400 for 7.4).
    # Files outside the range are loaded anyway, with a warning.
    min_fbx_version: int = 7000
    max_fbx_version: int = 7700

    versions: VersionConfig = field(default_factory=VersionConfig)
    triangulation: TriangulationConfig = field(default_factory=TriangulationConfig)

    def accepts_fbx_version(self, fbx_version):
        return self.min_fbx_version <= fbx_version <= self.max_fbx_version


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_PROFILES: Dict[str, LoadProfile] = {}

DEFAULT_PROFILE_ID = "fbx_7x"


def register_profile(profile):
    """Add (or replace) a profile in the registry."""
    _PROFILES[profile.profile_id] = profile


def get_profile(profile_id=None):
    """Look up a profile by id. None selects the default profile.

    Raises:
        KeyError: for an unregistered id
    """
    if profile_id is None:
        profile_id = DEFAULT_PROFILE_ID
    return _PROFILES[profile_id]


def get_profile_items() -> List[Tuple[str, str]]:
    """(id, name) pairs of all registered profiles, sorted by id."""
    return [(p.profile_id, p.profile_name) for _, p in sorted(_PROFILES.items())]


register_profile(LoadProfile())

register_profile(LoadProfile(
    profile_id="fbx_7x_auto_tri",
    profile_name="FBX 7.x (binary), triangulated",
    triangulation=TriangulationConfig(auto_triangulate=True),
))
