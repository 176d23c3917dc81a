import logging

import numpy as np
import pytest

from fbx_scene.fbx_format.fbx_events import Property
from fbx_scene.scene_graph.sg_objects import Objects, UnknownObject
from fbx_scene.scene_graph.sg_materials import (
    SHADING_LAMBERT, SHADING_PHONG, SHADING_UNKNOWN, BlendMode, WrapMode,
)
from fbx_scene.scene_graph.sg_model import InheritType
from fbx_scene.scene_graph.sg_node_attributes import NULL_LOOK_CROSS
from fbx_scene.scene_graph.sg_scene import load_scene
from fbx_scene.utils.image_convert import ImageConverter, RawImage, FORMAT_PNG

from fbx_builders import (
    node, obj, p70, properties70, color, template, scene_nodes, reader_for, S, I32, I64, F64,
)


IDENTITY = [float(v) for v in np.eye(4).flatten()]

TEXTURE_TEMPLATE = template(
    "Texture", "FbxFileTexture",
    p70("CurrentTextureBlendMode", "enum", "", "", 1),
    p70("PremultiplyAlpha", "bool", "", "", 1),
    p70("UVSet", "KString", "", "", "default"),
    p70("WrapModeU", "enum", "", "", 0),
    p70("WrapModeV", "enum", "", "", 0),
)

VIDEO_TEMPLATE = template("Video", "FbxVideo", p70("Path", "KString", "XRefUrl", "", ""))

MODEL_TEMPLATE = template(
    "Model", "FbxNode",
    p70("AxisLen", "double", "Number", "", 10.0),
    p70("Show", "bool", "", "", 1),
    p70("InheritType", "enum", "", "", 0),
)


def load(objects, templates=(), connections=(), **kwargs):
    return load_scene(
        reader_for(scene_nodes(objects=objects, templates=templates, connections=connections)),
        **kwargs)


def texture_node(object_id, name, *children):
    return obj("Texture", object_id, name, "Texture", "",
               node("Type", S("TextureVideoClip")),
               node("Version", I32(202)),
               node("TextureName", S(f"{name}\x00\x01Texture")),
               *children)


def test_dispatch_by_node_class_and_subclass(caplog):
    with caplog.at_level(logging.WARNING, logger="fbx_scene"):
        scene = load([
            obj("Deformer", 1, "Exotic", "Deformer", "Exotic"),
            obj("Model", 2, "Cam", "Model", "Stereo"),
            obj("Video", 3, "Movie", "Video", "Movie"),
            obj("AnimationStack", 4, "Take 001", "AnimStack", ""),
            obj("Deformer", 5, "Morph", "Deformer", "BlendShape", node("Version", I32(100))),
        ])
    objects = scene.objects
    assert sorted(objects.unknown) == [1, 2, 3, 4]
    unknown = objects.unknown[1]
    assert isinstance(unknown, UnknownObject)
    assert (unknown.name, unknown.class_name, unknown.subclass) == ("Exotic", "Deformer", "Exotic")
    assert objects.kind_of(5) == 'blend_shapes'
    assert "Unknown object: `/Objects/AnimationStack`" in caplog.text


def test_object_with_bad_identity_is_skipped(caplog):
    with caplog.at_level(logging.ERROR, logger="fbx_scene"):
        scene = load([
            node("Model", I64(7), S("NoSeparator"), S("Mesh")),
            node("Model", S("7"), S("Box\x00\x01Model"), S("Mesh")),
        ])
    assert len(scene.objects) == 0
    assert "Cannot get object properties" in caplog.text


def test_texture_without_relative_filename_is_dropped():
    scene = load([
        texture_node(10, "Broken", node("FileName", S("C:/tex/a.png"))),
        texture_node(11, "Good",
                     node("Media", S("GoodVideo\x00\x01Video")),
                     node("FileName", S("C:/tex/b.png")),
                     node("RelativeFilename", S("tex/b.png")),
                     node("ModelUVTranslation", F64(0.0), F64(0.0)),
                     properties70(p70("WrapModeV", "enum", "", "", 1))),
    ], templates=[TEXTURE_TEMPLATE])
    textures = scene.objects.textures
    assert 10 not in scene.objects
    texture = textures[11]
    assert texture.media == "GoodVideo"
    assert texture.relative_filename == "tex/b.png"
    assert texture.current_texture_blend_mode == BlendMode.ADDITIVE
    assert texture.premultiply_alpha is True
    assert texture.uv_set == "default"
    assert (texture.wrap_mode_u, texture.wrap_mode_v) == (WrapMode.REPEAT, WrapMode.CLAMP)


def test_texture_without_template_is_dropped():
    scene = load([texture_node(11, "Good",
                               node("FileName", S("b.png")),
                               node("RelativeFilename", S("b.png")))])
    assert len(scene.objects.textures) == 0


def test_texture_name_mismatch_only_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="fbx_scene"):
        scene = load([obj("Texture", 12, "A", "Texture", "",
                          node("TextureName", S("B\x00\x01Texture")),
                          node("FileName", S("a.png")),
                          node("RelativeFilename", S("a.png")))],
                     templates=[TEXTURE_TEMPLATE])
    assert 12 in scene.objects.textures
    assert "TextureName` value is different" in caplog.text


# -- materials -----------------------------------------------------------------

def material_node(object_id, shading_model, *records):
    return obj("Material", object_id, "Mat", "Material", "",
               node("Version", I32(102)),
               node("ShadingModel", S(shading_model)),
               node("MultiLayer", I32(0)),
               properties70(*records))


LAMBERT_TEMPLATE = template(
    "Material", "FbxSurfaceLambert",
    color("DiffuseColor", 0.5, 0.5, 0.5),
    p70("DiffuseFactor", "double", "Number", "A", 1.0),
)

PHONG_TEMPLATE = template(
    "Material", "FbxSurfacePhong",
    p70("Shininess", "double", "Number", "A", 20.0),
)


def test_lambert_material_uses_template_defaults():
    scene = load([material_node(20, "lambert", color("AmbientColor", 0.25, 0.25, 0.25))],
                 templates=[LAMBERT_TEMPLATE])
    material = scene.objects.materials[20]
    assert material.multi_layer is False
    assert material.shading_parameters.kind == SHADING_LAMBERT
    params = material.shading_parameters.value
    assert params.diffuse == (0.5, 0.5, 0.5)
    assert params.diffuse_factor == 1.0
    assert params.ambient == (0.25, 0.25, 0.25)
    # Neither instance nor template: zero
    assert params.emissive == (0.0, 0.0, 0.0)
    assert params.transparency_factor == 0.0


def test_phong_material_resolves_both_templates():
    scene = load([material_node(21, "phong", p70("SpecularFactor", "double", "Number", "A", 0.5))],
                 templates=[LAMBERT_TEMPLATE, PHONG_TEMPLATE])
    params = scene.objects.materials[21].shading_parameters
    assert params.kind == SHADING_PHONG
    assert params.value.lambert.diffuse == (0.5, 0.5, 0.5)
    assert params.value.shininess == 20.0
    assert params.value.specular_factor == 0.5
    assert params.value.specular == (0.0, 0.0, 0.0)


def test_unknown_shading_model_keeps_raw_properties(caplog):
    with caplog.at_level(logging.WARNING, logger="fbx_scene"):
        scene = load([material_node(22, "toon", p70("Outline", "double", "Number", "", 2.0))])
    params = scene.objects.materials[22].shading_parameters
    assert params.kind == SHADING_UNKNOWN
    assert params.value["Outline"].value.get_f64() == 2.0
    assert "`toon` is unknown" in caplog.text


def test_material_without_shading_model_is_dropped():
    scene = load([obj("Material", 23, "Mat", "Material", "", node("MultiLayer", I32(0)))])
    assert 23 not in scene.objects


# -- video -------------------------------------------------------------------

class RecordingConverter(ImageConverter):

    def __init__(self):
        self.calls = []

    def binary_to_image(self, data, filename):
        self.calls.append((bytes(data), filename))
        return ("decoded", filename)


def video_node(object_id, *children):
    return obj("Video", object_id, "Clip", "Video", "Clip",
               node("Type", S("Clip")), *children)


def test_video_content_goes_through_converter():
    converter = RecordingConverter()
    scene = load([video_node(30,
                             node("UseMipMap", I32(0)),
                             node("Filename", S("C:/tex/a.png")),
                             node("RelativeFilename", S("tex/a.png")),
                             node("Content", Property.binary(b"payload")))],
                 templates=[VIDEO_TEMPLATE], converter=converter)
    video = scene.objects.videos[30]
    assert converter.calls == [(b"payload", "C:/tex/a.png")]
    assert video.content == ("decoded", "C:/tex/a.png")
    assert video.path == ""
    assert video.use_mip_map is False


def test_video_default_converter_sniffs_png():
    png = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\x0dIHDR" + (4).to_bytes(4, "big") + (2).to_bytes(4, "big")
    scene = load([video_node(31,
                             node("UseMipMap", I32(1)),
                             node("Filename", S("a.png")),
                             node("RelativeFilename", S("a.png")),
                             node("Content", Property.binary(png)))],
                 templates=[VIDEO_TEMPLATE])
    content = scene.objects.videos[31].content
    assert isinstance(content, RawImage)
    assert (content.format, content.width, content.height) == (FORMAT_PNG, 4, 2)


def test_video_content_before_filename_is_ignored(caplog):
    converter = RecordingConverter()
    with caplog.at_level(logging.ERROR, logger="fbx_scene"):
        scene = load([video_node(32,
                                 node("UseMipMap", I32(0)),
                                 node("Content", Property.binary(b"payload")),
                                 node("Filename", S("a.png")),
                                 node("RelativeFilename", S("a.png")),
                                 properties70(p70("Path", "KString", "XRefUrl", "", "C:/a.png")))],
                     converter=converter)
    video = scene.objects.videos[32]
    assert converter.calls == []
    assert video.content is None
    assert video.path == "C:/a.png"
    assert "should be read before" in caplog.text


# -- deformers -----------------------------------------------------------------

def cluster_node(object_id, *children):
    return obj("Deformer", object_id, "Bone", "SubDeformer", "Cluster",
               node("Version", I32(100)),
               node("UserData", S(""), S("")),
               *children,
               node("Transform", Property.vec_f64(IDENTITY)),
               node("TransformLink", Property.vec_f64(IDENTITY)))


def test_skin_and_cluster():
    scene = load([
        obj("Deformer", 40, "Skin", "Deformer", "Skin",
            node("Version", I32(101)),
            node("Link_DeformAcuracy", F64(50.0)),
            node("SkinningType", S("Linear"))),
        cluster_node(41,
                     node("Indexes", Property.vec_i32([0, 2, 3])),
                     node("Weights", Property.vec_f64([1.0, 0.5, 0.25]))),
    ])
    skin = scene.objects.skins[40]
    assert skin.skinning_type == "Linear"
    assert skin.link_deform_accuracy == 50.0
    cluster = scene.objects.clusters[41]
    assert cluster.indices.dtype == np.uint32
    assert cluster.indices.tolist() == [0, 2, 3]
    assert cluster.weights.tolist() == [1.0, 0.5, 0.25]
    assert cluster.transform.shape == (4, 4)
    assert cluster.user_data == ("", "")


def test_cluster_length_mismatch_is_dropped(caplog):
    with caplog.at_level(logging.ERROR, logger="fbx_scene"):
        scene = load([cluster_node(42,
                                   node("Indexes", Property.vec_i32([0, 1])),
                                   node("Weights", Property.vec_f64([1.0])))])
    assert 42 not in scene.objects
    assert "Inconsistent data" in caplog.text


def test_cluster_without_weights_is_empty():
    scene = load([cluster_node(43)])
    cluster = scene.objects.clusters[43]
    assert len(cluster.indices) == 0
    assert len(cluster.weights) == 0


def test_blend_shape_channel():
    scene = load([
        obj("Deformer", 44, "Smile", "SubDeformer", "BlendShapeChannel",
            node("Version", I32(100)),
            node("DeformPercent", F64(25.0)),
            node("FullWeights", Property.vec_f64([100.0]))),
        obj("Deformer", 45, "NoPercent", "SubDeformer", "BlendShapeChannel",
            node("FullWeights", Property.vec_f64([100.0]))),
    ])
    assert scene.objects.blend_shape_channels[44].deform_percent == 25.0
    assert scene.objects.blend_shape_channels[45].deform_percent == 0.0


# -- models and poses ----------------------------------------------------------

def test_model_with_template_defaults():
    scene = load([
        obj("Model", 50, "Cube", "Model", "Mesh",
            node("Version", I32(232)),
            node("Shading", Property.boolean(True)),
            node("Culling", S("CullingOff")),
            properties70(p70("InheritType", "enum", "", "", 1))),
        obj("Model", 51, "Hidden", "Model", "Null",
            node("Shading", Property.boolean(False)),
            node("Culling", S("CullingOnCW")),
            properties70(p70("Show", "bool", "", "", 0))),
        obj("Model", 52, "NoCulling", "Model", "Mesh",
            node("Shading", Property.boolean(True))),
    ], templates=[MODEL_TEMPLATE])
    models = scene.objects.models
    cube = models[50]
    assert cube.subclass == "Mesh"
    assert cube.shading is True
    assert cube.axis_len == 10.0
    assert cube.show is True
    assert cube.inherit_type == InheritType.RSRS
    assert models[51].show is False
    assert models[51].inherit_type == InheritType.RRSS
    assert 52 not in scene.objects


def test_pose_count_mismatch_keeps_pose(caplog):
    with caplog.at_level(logging.ERROR, logger="fbx_scene"):
        scene = load([obj("Pose", 60, "BindPose", "Pose", "BindPose",
                          node("Type", S("BindPose")),
                          node("Version", I32(100)),
                          node("NbPoseNodes", I32(2)),
                          node("PoseNode", children=[
                              node("Node", I64(50)),
                              node("Matrix", Property.vec_f64(IDENTITY)),
                          ]))])
    pose = scene.objects.poses[60]
    assert [p.node for p in pose.pose_nodes] == [50]
    assert pose.pose_nodes[0].matrix.tolist() == np.eye(4).tolist()
    assert "should be equal to the number" in caplog.text


def test_pose_node_before_count_is_skipped():
    scene = load([obj("Pose", 61, "BindPose", "Pose", "BindPose",
                      node("PoseNode", children=[node("Node", I64(50))]),
                      node("NbPoseNodes", I32(0)))])
    assert scene.objects.poses[61].pose_nodes == []


# -- node attributes and collections -------------------------------------------

def test_node_attributes():
    scene = load([
        obj("NodeAttribute", 70, "", "NodeAttribute", "LimbNode",
            node("TypeFlags", S("Skeleton"))),
        obj("NodeAttribute", 71, "", "NodeAttribute", "Null",
            node("TypeFlags", S("Null")),
            properties70(p70("Look", "enum", "", "", 1))),
        obj("NodeAttribute", 72, "", "NodeAttribute", "LimbNode",
            node("TypeFlags", S("Wobble"))),
    ], templates=[
        template("NodeAttribute", "FbxSkeleton", p70("Size", "double", "Number", "", 100.0)),
        template("NodeAttribute", "FbxNull",
                 color("Color", 0.75, 0.75, 0.75),
                 p70("Size", "double", "Number", "", 100.0),
                 p70("Look", "enum", "", "", 0)),
    ])
    limb = scene.objects.limb_node_attributes[70]
    assert (limb.type_flags, limb.size) == ("Skeleton", 100.0)
    null = scene.objects.null_node_attributes[71]
    assert null.look == NULL_LOOK_CROSS
    assert null.color == (0.75, 0.75, 0.75)
    assert scene.objects.limb_node_attributes[72].type_flags == "Unknown"


def test_display_layer():
    scene = load([obj("CollectionExclusive", 80, "Layer1", "DisplayLayer", "DisplayLayer",
                      properties70(p70("Show", "bool", "", "", 0)))],
                 templates=[template(
                     "CollectionExclusive", "FbxDisplayLayer",
                     color("Color", 0.5, 0.5, 0.5),
                     p70("Show", "bool", "", "", 1),
                     p70("Freeze", "bool", "", "", 0),
                     p70("LODBox", "bool", "", "", 0),
                 )])
    layer = scene.objects.display_layers[80]
    assert layer.show is False
    assert layer.freeze is False
    assert layer.color == (0.5, 0.5, 0.5)


# -- object store --------------------------------------------------------------

def test_objects_store_moves_reused_id(caplog):
    objects = Objects()
    first = UnknownObject(1, "a", "Model", "Exotic")
    objects.add('unknown', first)
    with caplog.at_level(logging.WARNING, logger="fbx_scene"):
        objects.add('blend_shapes', UnknownObject(1, "b", "Deformer", "BlendShape"))
    assert 1 not in objects.unknown
    assert objects.kind_of(1) == 'blend_shapes'
    assert objects.get(1).name == "b"
    assert len(objects) == 1
    assert "moved from `unknown` to `blend_shapes`" in caplog.text


def test_objects_store_rejects_unknown_map():
    with pytest.raises(KeyError):
        Objects().add('cameras', UnknownObject(1, "", "", ""))
