import logging

import numpy as np
import pytest

from fbx_scene.fbx_format.fbx_errors import UnsupportedDataError
from fbx_scene.fbx_format.fbx_events import Property
from fbx_scene.scene_graph import sg_geometry
from fbx_scene.scene_graph.sg_geometry import (
    Mesh, MappingMode, ReferenceMode, VertexIndex, LayerElement,
)
from fbx_scene.scene_graph.sg_scene import load_scene
from fbx_scene.utils.triangulate import triangulate_polygon

from fbx_builders import (
    node, obj, mesh_node, layer_element, scene_nodes, reader_for, S, I32, UNIT_QUAD,
)


NORMALS = [
    [0.0, 0.0, 1.0], [0.0, 0.1, 1.0], [0.0, 0.2, 1.0], [0.0, 0.3, 1.0],
]


def make_mesh(vertices, pvi, *elements):
    mesh = Mesh(
        1, "mesh",
        np.asarray(vertices, dtype=np.float32).reshape(-1, 3),
        VertexIndex.not_triangulated(pvi),
    )
    for element in elements:
        mesh.layer_element_normals.append(element)
    return mesh


def test_quad_split_along_p0_p2():
    target = []
    vertices = np.asarray(UNIT_QUAD, dtype=np.float32).reshape(4, 3)
    assert triangulate_polygon(vertices, [0, 1, 2, 3], target) == 2
    assert target == [0, 1, 2, 2, 3, 0]


def test_concave_quad_split_along_p1_p3():
    # p1 pushed past the p0-p2 diagonal: reflex at p1
    vertices = np.array([[0, 0, 0], [1.2, 1.5, 0], [2, 2, 0], [0, 2, 0]], dtype=np.float32)
    target = []
    assert triangulate_polygon(vertices, [0, 1, 2, 3], target) == 2
    assert target == [0, 1, 3, 3, 1, 2]


def test_reference_triangulator_unsupported_polygons(caplog):
    vertices = np.zeros((6, 3), dtype=np.float32)
    with caplog.at_level(logging.WARNING, logger="fbx_scene"):
        for poly in ([0, 1], list(range(5))):
            target = []
            assert triangulate_polygon(vertices, poly, target) == 0
            assert target == []
    assert len(caplog.records) == 2


def test_triangulate_quad_mesh():
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3])
    assert mesh.triangulate() is True
    assert mesh.is_triangulated
    assert mesh.triangulated_index_list().dtype == np.uint32
    assert mesh.triangulated_index_list().tolist() == [0, 1, 2, 2, 3, 0]


def test_triangulate_is_idempotent():
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3])
    mesh.triangulate()
    first = mesh.polygon_vertex_index.indices.copy()
    calls = []

    def counting(vertices, poly, target):
        calls.append(poly)
        return triangulate_polygon(vertices, poly, target)

    assert mesh.triangulate(counting) is False
    assert calls == []
    assert mesh.polygon_vertex_index.indices.tolist() == first.tolist()


def test_triangulated_index_list_requires_triangulation():
    with pytest.raises(ValueError):
        make_mesh(UNIT_QUAD, [0, 1, 2, ~3]).triangulated_index_list()


def test_by_polygon_vertex_direct_remap():
    normals = LayerElement(0, "", MappingMode.BY_POLYGON_VERTEX, ReferenceMode.direct(),
                           np.asarray(NORMALS, dtype=np.float32))
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3], normals)
    mesh.triangulate()
    expected = [NORMALS[i] for i in (0, 1, 2, 2, 3, 0)]
    np.testing.assert_allclose(normals.data, expected)


def test_by_polygon_vertex_index_to_direct_remap():
    normals = LayerElement(0, "", MappingMode.BY_POLYGON_VERTEX,
                           ReferenceMode.index_to_direct([3, 2, 1, 0]),
                           np.asarray(NORMALS, dtype=np.float32))
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3], normals)
    mesh.triangulate()
    assert normals.reference_mode.indices.tolist() == [3, 2, 1, 1, 0, 3]
    # Data itself is untouched
    assert normals.data.shape == (4, 3)


def test_by_polygon_remap():
    # A triangle followed by a quad: polygon 1 becomes triangles 1 and 2
    vertices = UNIT_QUAD + [2, 0, 0]
    per_polygon = LayerElement(0, "", MappingMode.BY_POLYGON, ReferenceMode.direct(),
                               np.array([[1, 0, 0], [0, 1, 0]], dtype=np.float32))
    indexed = LayerElement(1, "", MappingMode.BY_POLYGON,
                           ReferenceMode.index_to_direct([5, 7]), None)
    mesh = make_mesh(vertices, [1, 4, ~2, 0, 1, 2, ~3], per_polygon, indexed)
    mesh.triangulate()
    assert mesh.triangulated_index_list().tolist() == [1, 4, 2, 0, 1, 2, 2, 3, 0]
    assert per_polygon.data.tolist() == [[1, 0, 0], [0, 1, 0], [0, 1, 0]]
    assert indexed.reference_mode.indices.tolist() == [5, 7, 7]


def test_other_mapping_modes_untouched():
    data = np.asarray(NORMALS, dtype=np.float32)
    elements = [
        LayerElement(0, "", mode, ReferenceMode.direct(), data)
        for mode in (MappingMode.BY_CONTROL_POINT, MappingMode.ALL_SAME,
                     MappingMode.BY_EDGE, MappingMode.NONE)
    ]
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3], *elements)
    mesh.triangulate()
    for element in elements:
        assert element.data is data


def test_trailing_polygon_without_terminator_is_dropped(caplog):
    with caplog.at_level(logging.WARNING, logger="fbx_scene"):
        mesh = make_mesh(UNIT_QUAD, [0, 1, ~2, 0, 2])
        mesh.triangulate()
    assert mesh.triangulated_index_list().tolist() == [0, 1, 2]
    assert "didn't end with a negative number" in caplog.text


def test_triangulator_count_mismatch():
    def lying(vertices, poly, target):
        target.extend((0, 1, 2))
        return 2

    with pytest.raises(ValueError):
        make_mesh(UNIT_QUAD, [0, 1, ~2]).triangulate(lying)


def test_too_many_indices(monkeypatch):
    monkeypatch.setattr(sg_geometry, "MAX_TRIANGULATED_INDEX_COUNT", 5)
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3])
    with pytest.raises(UnsupportedDataError):
        mesh.triangulate()
    assert not mesh.is_triangulated


def test_short_layer_element_leaves_mesh_untouched():
    short = LayerElement(0, "", MappingMode.BY_POLYGON_VERTEX, ReferenceMode.direct(),
                         np.zeros((2, 3), dtype=np.float32))
    mesh = make_mesh(UNIT_QUAD, [0, 1, 2, ~3], short)
    with pytest.raises(ValueError):
        mesh.triangulate()
    assert not mesh.is_triangulated
    assert short.data.shape == (2, 3)


def test_mapping_mode_aliases():
    assert MappingMode.from_string("ByVertice") == MappingMode.BY_CONTROL_POINT
    assert MappingMode.from_string("ByVertex") == MappingMode.BY_CONTROL_POINT
    assert MappingMode.from_string("Sideways") is None


# -- loading -------------------------------------------------------------------

def load_objects(*objects):
    return load_scene(reader_for(scene_nodes(objects=objects))).objects


def test_load_mesh_with_layers():
    flat_normals = [c for n in NORMALS for c in n]
    objects = load_objects(mesh_node(
        100, "Cube", UNIT_QUAD, [0, 1, 2, -4],
        node("Edges", Property.vec_i32([0, 1])),
        layer_element("LayerElementNormal", 0, "ByPolygonVertex", "Direct",
                      data_node="Normals", data=flat_normals),
        layer_element("LayerElementUV", 0, "ByPolygonVertex", "IndexToDirect",
                      data_node="UV", data=[0, 0, 1, 0, 1, 1, 0, 1],
                      index_node="UVIndex", index=[0, 1, 2, 3], name="map1"),
        layer_element("LayerElementMaterial", 0, "AllSame", "IndexToDirect",
                      index_node="Materials", index=[0]),
        node("Layer", I32(0), children=[
            node("Version", I32(100)),
            node("LayerElement", children=[
                node("Type", S("LayerElementNormal")), node("TypedIndex", I32(0))]),
            node("LayerElement", children=[
                node("Type", S("LayerElementUV")), node("TypedIndex", I32(0))]),
            node("LayerElement", children=[
                node("Type", S("LayerElementMaterial")), node("TypedIndex", I32(0))]),
            node("LayerElement", children=[
                node("Type", S("LayerElementSmoothing")), node("TypedIndex", I32(0))]),
        ]),
    ))
    mesh = objects.meshes[100]
    assert mesh.name == "Cube"
    assert mesh.vertices.shape == (4, 3)
    assert mesh.polygon_vertex_index.kind == VertexIndex.NOT_TRIANGULATED
    assert mesh.polygon_vertex_index.indices.tolist() == [0, 1, 2, -4]

    normals, = mesh.layer_element_normals
    assert normals.data.shape == (4, 3)
    assert normals.reference_mode == ReferenceMode.direct()

    uvs, = mesh.layer_element_uvs
    assert uvs.name == "map1"
    assert uvs.data.shape == (4, 2)
    assert uvs.reference_mode.indices.dtype == np.uint32

    materials, = mesh.layer_element_materials
    assert materials.data is None
    assert materials.mapping_mode == MappingMode.ALL_SAME
    assert materials.reference_mode.indices.tolist() == [0]

    layer, = mesh.layers
    assert (layer.material, layer.normal, layer.uv) == ([0], [0], [0])

    mesh.triangulate()
    assert uvs.reference_mode.indices.tolist() == [0, 1, 2, 2, 3, 0]
    assert normals.data.shape == (6, 3)


def test_load_layer_element_index_alias_and_missing_index(caplog):
    with caplog.at_level(logging.ERROR, logger="fbx_scene"):
        objects = load_objects(mesh_node(
            100, "Mesh", UNIT_QUAD, [0, 1, 2, -4],
            layer_element("LayerElementUV", 0, "ByPolygonVertex", "Index",
                          data_node="UV", data=[0, 0]),
            layer_element("LayerElementNormal", 0, "ByVertice", "Direct",
                          data_node="Normals", data=[0, 0, 1] * 4),
        ))
    mesh = objects.meshes[100]
    # IndexToDirect without UVIndex is dropped
    assert mesh.layer_element_uvs == []
    assert mesh.layer_element_normals[0].mapping_mode == MappingMode.BY_CONTROL_POINT
    assert "LayerElement*" in caplog.text


def test_mesh_without_vertices_is_dropped():
    objects = load_objects(obj(
        "Geometry", 5, "Broken", "Geometry", "Mesh",
        node("PolygonVertexIndex", Property.vec_i32([0, 1, -3])),
    ))
    assert 5 not in objects


def test_load_shape():
    objects = load_objects(
        obj("Geometry", 7, "Smile", "Geometry", "Shape",
            node("Version", I32(100)),
            node("Indexes", Property.vec_i32([0, 2])),
            node("Vertices", Property.vec_f64([0, 0, 0.1, 0, 0, 0.2])),
            node("Normals", Property.vec_f64([0, 0, 1, 0, 0, 1]))),
        obj("Geometry", 8, "NoVerts", "Geometry", "Shape",
            node("Indexes", Property.vec_i32([0]))),
    )
    shape = objects.shapes[7]
    assert shape.indices.tolist() == [0, 2]
    assert shape.vertices.shape == (2, 3)
    assert shape.normals.shape == (2, 3)
    assert 8 not in objects
