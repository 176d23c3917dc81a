"""``/Objects/Model`` and ``/Objects/Pose`` decoding.

Models are the transform nodes of the scene; the subclass tells what hangs
off them (Mesh, LimbNode, Null, ...). Poses record per-node world matrices,
most commonly the bind pose of a skinned mesh.
"""

import logging

from ..fbx_format.fbx_constants import NODE_PROPERTIES70
from ..fbx_format.node_loader import (
    NodeLoader, ignore_current_node, get_first,
    check_node_version, check_node_type, matrix_from_array,
)
from ..property import GenericPropertiesLoader, get_value_or_default


_log = logging.getLogger("fbx_scene.model")


MODEL_SUBCLASSES = frozenset(("Mesh", "LimbNode", "Null", "Root", "Camera", "Light"))
POSE_SUBCLASSES = frozenset(("BindPose", "RestPose"))


class CullingType:
    OFF = "CullingOff"
    CCW = "CullingOnCCW"
    CW = "CullingOnCW"

    _VALUES = frozenset((OFF, CCW, CW))

    @classmethod
    def from_string(cls, value):
        return value if value in cls._VALUES else None


class InheritType:
    """Transform inheritance (FbxTransform::EInheritType)."""

    RRSS = "RrSs"
    RSRS = "RSrs"
    RRS = "Rrs"

    _VALUES = (RRSS, RSRS, RRS)

    @classmethod
    def from_i64(cls, value):
        if value is None or not 0 <= value < len(cls._VALUES):
            return None
        return cls._VALUES[value]


class Model:
    __slots__ = ('id', 'name', 'subclass', 'shading', 'culling',
                 'axis_len', 'show', 'inherit_type')

    def __init__(self, object_id, name, subclass, shading, culling,
                 axis_len, show, inherit_type):
        self.id = object_id
        self.name = name
        self.subclass = subclass
        self.shading = shading
        self.culling = culling
        self.axis_len = axis_len
        self.show = show
        self.inherit_type = inherit_type

    def __repr__(self):
        return f"Model(id={self.id}, name={self.name!r}, {self.subclass})"


class ModelLoader(NodeLoader):
    """Loads ``/Objects/Model`` of any supported subclass."""

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.node_path = f"/Objects/Model({obj_props.subclass})"
        self.properties = None
        self.shading = None
        self.culling = None

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(properties, self.ctx.profile.versions.model, self.node_path)
        elif name == "Shading":
            self.shading = get_first(properties, "get_bool")
        elif name == "Culling":
            self.culling = CullingType.from_string(get_first(properties, "get_string"))
        elif name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
            return
        else:
            _log.warning("Unknown node: `%s/%s`", self.node_path, name)
        ignore_current_node(reader)

    def on_finish(self):
        defaults = self.ctx.template("Model", "FbxNode")
        props = self.properties
        axis_len = get_value_or_default(props, defaults, "AxisLen", "get_f64")
        show = get_value_or_default(props, defaults, "Show", "get_i64")
        inherit_type = InheritType.from_i64(
            get_value_or_default(props, defaults, "InheritType", "get_i64"))

        if any(v is None for v in (self.shading, self.culling, axis_len, show, inherit_type)):
            _log.error("Required property not found for `%s` (id=%d)",
                       self.node_path, self.obj_props.id)
            return None
        return Model(self.obj_props.id, self.obj_props.name, self.obj_props.subclass,
                     self.shading, self.culling, axis_len, show != 0, inherit_type)


class PoseNode:
    """Matrix of one model in a pose."""

    __slots__ = ('node', 'matrix')

    def __init__(self, node, matrix):
        self.node = node        # Model id
        self.matrix = matrix    # 4x4 float32

    def __repr__(self):
        return f"PoseNode(node={self.node})"


class Pose:
    __slots__ = ('id', 'name', 'pose_nodes')

    def __init__(self, object_id, name, pose_nodes):
        self.id = object_id
        self.name = name
        self.pose_nodes = pose_nodes

    def __repr__(self):
        return f"Pose(id={self.id}, name={self.name!r}, {len(self.pose_nodes)} nodes)"


class PoseNodeLoader(NodeLoader):

    def __init__(self):
        self.node = None
        self.matrix = None

    def on_child_node(self, reader, name, properties):
        if name == "Node":
            self.node = get_first(properties, "get_i64")
        elif name == "Matrix":
            self.matrix = matrix_from_array(get_first(properties, "as_vec_f32"))
        else:
            _log.error("Unknown node: `/Objects/Pose/PoseNode/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.node is None or self.matrix is None:
            _log.error("Required node not found for `/Objects/Pose/PoseNode`")
            return None
        return PoseNode(self.node, self.matrix)


class PoseLoader(NodeLoader):
    """Loads ``/Objects/Pose``.

    ``PoseNode`` children are only collected once ``NbPoseNodes`` has been
    read. A count mismatch is logged but the pose is kept.
    """

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.nb_pose_nodes = None
        self.pose_nodes = None

    def on_child_node(self, reader, name, properties):
        if name == "Type":
            check_node_type(properties, "BindPose", "/Objects/Pose")
        elif name == "Version":
            check_node_version(properties, self.ctx.profile.versions.pose, "/Objects/Pose")
        elif name == "NbPoseNodes":
            self._read_count(properties)
        elif name == "PoseNode":
            if self.pose_nodes is None:
                _log.warning("`/Objects/Pose/PoseNode` before `NbPoseNodes`, skipped")
            else:
                pose_node = PoseNodeLoader().load(reader)
                if pose_node is not None:
                    self.pose_nodes.append(pose_node)
                return
        else:
            _log.warning("Unknown node: `/Objects/Pose/%s`", name)
        ignore_current_node(reader)

    def _read_count(self, properties):
        if self.nb_pose_nodes is not None:
            _log.error("`/Objects/Pose/NbPoseNodes` appears more than once in the same `Pose` node")
            return
        count = get_first(properties, "get_i32")
        if count is None:
            _log.error("Invalid property at `/Objects/Pose/NbPoseNodes`: type error")
        elif count < 0:
            _log.error(
                "Invalid property at `/Objects/Pose/NbPoseNodes`: "
                "expected non-negative value, but got `%d`", count)
        else:
            self.nb_pose_nodes = count
            self.pose_nodes = []

    def on_finish(self):
        if self.nb_pose_nodes is None:
            _log.error("Required property not found for `/Objects/Pose` (id=%d): "
                       "`NbPoseNodes` invalid or not found", self.obj_props.id)
            return None
        if len(self.pose_nodes) != self.nb_pose_nodes:
            _log.error(
                "Number of `Pose/PoseNode` (=%d) should be equal to the number "
                "specified by `NbPoseNodes` (=%d)", len(self.pose_nodes), self.nb_pose_nodes)
        return Pose(self.obj_props.id, self.obj_props.name, self.pose_nodes)
