"""``/Objects/Deformer`` decoding.

Deformer(Deformer) objects are Skin and BlendShape; Deformer(SubDeformer)
objects are Cluster (one bone's influence on a skin) and BlendShapeChannel
(one morph target slider). Which mesh, bone or shape they act on is only
known through /Connections.
"""

import logging

import numpy as np

from ..fbx_format.node_loader import (
    NodeLoader, ignore_current_node, get_first, check_node_version, matrix_from_array,
)


_log = logging.getLogger("fbx_scene.deformers")


class SkinningType:
    RIGID = "Rigid"
    LINEAR = "Linear"
    DUAL_QUATERNION = "DualQuaternion"
    BLEND = "Blend"

    _VALUES = frozenset((RIGID, LINEAR, DUAL_QUATERNION, BLEND))

    @classmethod
    def from_string(cls, value):
        return value if value in cls._VALUES else None


class Skin:
    __slots__ = ('id', 'name', 'link_deform_accuracy', 'skinning_type')

    def __init__(self, object_id, name, link_deform_accuracy, skinning_type):
        self.id = object_id
        self.name = name
        self.link_deform_accuracy = link_deform_accuracy
        self.skinning_type = skinning_type

    def __repr__(self):
        return f"Skin(id={self.id}, {self.skinning_type}, accuracy={self.link_deform_accuracy})"


class Cluster:
    """Skin cluster: control point weights of one bone.

    Attributes:
        user_data: (id, data) strings
        indices: uint32 control point indices
        weights: float32 weights, same length as ``indices``
        transform: 4x4 float32 mesh transform at bind time
        transform_link: 4x4 float32 bone transform at bind time
    """

    __slots__ = ('id', 'name', 'user_data', 'indices', 'weights', 'transform', 'transform_link')

    def __init__(self, object_id, name, user_data, indices, weights, transform, transform_link):
        self.id = object_id
        self.name = name
        self.user_data = user_data
        self.indices = indices
        self.weights = weights
        self.transform = transform
        self.transform_link = transform_link

    def __repr__(self):
        return f"Cluster(id={self.id}, name={self.name!r}, {len(self.indices)} weights)"


class BlendShape:
    __slots__ = ('id', 'name')

    def __init__(self, object_id, name):
        self.id = object_id
        self.name = name

    def __repr__(self):
        return f"BlendShape(id={self.id}, name={self.name!r})"


class BlendShapeChannel:
    __slots__ = ('id', 'name', 'deform_percent', 'full_weights')

    def __init__(self, object_id, name, deform_percent, full_weights):
        self.id = object_id
        self.name = name
        self.deform_percent = deform_percent
        self.full_weights = full_weights

    def __repr__(self):
        return f"BlendShapeChannel(id={self.id}, name={self.name!r}, {self.deform_percent}%)"


class SkinLoader(NodeLoader):

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.link_deform_accuracy = None
        self.skinning_type = None

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(properties, self.ctx.profile.versions.skin, "/Objects/Deformer(Skin)")
        elif name == "Link_DeformAcuracy":
            self.link_deform_accuracy = get_first(properties, "as_f64")
        elif name == "SkinningType":
            self.skinning_type = SkinningType.from_string(get_first(properties, "get_string"))
        else:
            _log.warning("Unknown node: `/Objects/Deformer(Skin)/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.link_deform_accuracy is None or self.skinning_type is None:
            _log.error("Required property not found for `/Objects/Deformer(Skin)` (id=%d)",
                       self.obj_props.id)
            return None
        return Skin(self.obj_props.id, self.obj_props.name,
                    self.link_deform_accuracy, self.skinning_type)


class ClusterLoader(NodeLoader):

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.user_data = None
        self.indices = None
        self.weights = None
        self.transform = None
        self.transform_link = None

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(
                properties, self.ctx.profile.versions.deformer, "/Objects/Deformer(Cluster)")
        elif name == "UserData":
            cells = [cell.get_string() for cell in properties.iter()][:2]
            if len(cells) == 2 and None not in cells:
                self.user_data = tuple(cells)
        elif name == "Indexes":
            indices = get_first(properties, "extract_vec_i32")
            self.indices = indices.astype(np.uint32) if indices is not None else None
        elif name == "Weights":
            self.weights = get_first(properties, "as_vec_f32")
        elif name == "Transform":
            self.transform = matrix_from_array(get_first(properties, "as_vec_f32"))
        elif name == "TransformLink":
            self.transform_link = matrix_from_array(get_first(properties, "as_vec_f32"))
        else:
            _log.warning("Unknown node: `/Objects/Deformer(Cluster)/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        n_indices = None if self.indices is None else len(self.indices)
        n_weights = None if self.weights is None else len(self.weights)
        if n_indices != n_weights:
            _log.error(
                "Inconsistent data at `/Objects/Deformer(Cluster)` node (id=%d): "
                "number of elements in `Indexes` (%s) and `Weights` (%s) not matched",
                self.obj_props.id, n_indices, n_weights)
            return None
        if self.user_data is None or self.transform is None or self.transform_link is None:
            _log.error("Required property not found for `/Objects/Deformer(Cluster)` (id=%d)",
                       self.obj_props.id)
            return None
        # A cluster that influences nothing has neither `Indexes` nor `Weights`.
        indices = self.indices if self.indices is not None else np.zeros(0, dtype=np.uint32)
        weights = self.weights if self.weights is not None else np.zeros(0, dtype=np.float32)
        return Cluster(self.obj_props.id, self.obj_props.name, self.user_data,
                       indices, weights, self.transform, self.transform_link)


class BlendShapeLoader(NodeLoader):

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(
                properties, self.ctx.profile.versions.deformer, "/Objects/Deformer(BlendShape)")
        else:
            _log.warning("Unknown node: `/Objects/Deformer(BlendShape)/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        return BlendShape(self.obj_props.id, self.obj_props.name)


class BlendShapeChannelLoader(NodeLoader):

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.deform_percent = None
        self.full_weights = None

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(
                properties, self.ctx.profile.versions.deformer,
                "/Objects/Deformer(BlendShapeChannel)")
        elif name == "DeformPercent":
            self.deform_percent = get_first(properties, "as_f64")
        elif name == "FullWeights":
            self.full_weights = get_first(properties, "as_vec_f32")
        elif name == "Properties70":
            # Repeats DeformPercent
            pass
        else:
            _log.warning("Unknown node: `/Objects/Deformer(BlendShapeChannel)/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.full_weights is None:
            _log.error(
                "Required property not found for `/Objects/Deformer(BlendShapeChannel)` (id=%d)",
                self.obj_props.id)
            return None
        deform_percent = self.deform_percent if self.deform_percent is not None else 0.0
        return BlendShapeChannel(self.obj_props.id, self.obj_props.name,
                                 deform_percent, self.full_weights)
