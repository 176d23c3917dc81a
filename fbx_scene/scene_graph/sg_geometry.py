"""``/Objects/Geometry`` decoding: meshes, blend shape targets, triangulation.

Terms used below (as in the FBX SDK):
- control point: a vertex position (x, y, z)
- polygon vertex: an index into the control points
- polygon: a run of polygon vertices; the last one of each polygon is
  stored one's-complemented (``~i``, negative) in ``PolygonVertexIndex``

Mesh node layout::

    Geometry: <id>, "Cube\\x00\\x01Geometry", "Mesh"
        GeometryVersion: 124
        Vertices: f64[3 * n_control_points]
        PolygonVertexIndex: i32[...]
        Edges: i32[...]                           (ignored)
        LayerElementNormal: <channel>
            Version: 101
            Name: ""
            MappingInformationType: "ByPolygonVertex"
            ReferenceInformationType: "Direct"
            Normals: f64[...]
            NormalsW: f64[...]                    (ignored)
        LayerElementUV: <channel>                 (UV / UVIndex)
        LayerElementMaterial: <channel>           (Materials)
        Layer: <channel>
            Version: 100
            LayerElement
                Type: "LayerElementNormal"
                TypedIndex: 0

Layer elements are per-mesh attribute streams. Their ``mapping_mode`` says
what one datum is attached to, and their ``reference_mode`` whether data is
addressed directly or through an index array. Triangulation changes the
polygon vertex and polygon numbering, so elements mapped by polygon vertex
or by polygon are remapped along with it.
"""

import logging

import numpy as np

from ..fbx_format.fbx_constants import MAX_TRIANGULATED_INDEX_COUNT
from ..fbx_format.fbx_errors import UnsupportedDataError
from ..fbx_format.node_loader import (
    NodeLoader, ignore_current_node, get_first, check_node_version, vectors_from_array,
)
from ..utils.triangulate import triangulate_polygon


_log = logging.getLogger("fbx_scene.geometry")


class MappingMode:
    """What one layer element datum is attached to."""

    NONE = "None"
    BY_CONTROL_POINT = "ByControlPoint"
    BY_POLYGON_VERTEX = "ByPolygonVertex"
    BY_POLYGON = "ByPolygon"
    BY_EDGE = "ByEdge"
    ALL_SAME = "AllSame"

    _ALIASES = {
        "ByControlPoint": BY_CONTROL_POINT,
        "ByVertex": BY_CONTROL_POINT,
        "ByVertice": BY_CONTROL_POINT,
        "ByPolygonVertex": BY_POLYGON_VERTEX,
        "ByPolygon": BY_POLYGON,
        "ByEdge": BY_EDGE,
        "AllSame": ALL_SAME,
    }

    @classmethod
    def from_string(cls, name):
        """Mapping mode for a ``MappingInformationType`` value, or None."""
        mode = cls._ALIASES.get(name)
        if mode is None:
            _log.error(
                "Invalid property at `/Objects/Geometry(Mesh)/LayerElement*/"
                "MappingInformationType`: unsupported value `%s`", name)
        return mode


class ReferenceMode:
    """How layer element data is addressed.

    Direct: ``data[i]`` belongs to the i-th mapped item.
    IndexToDirect: ``data[indices[i]]`` belongs to the i-th mapped item.
    """

    DIRECT = "Direct"
    INDEX_TO_DIRECT = "IndexToDirect"

    __slots__ = ('kind', 'indices')

    def __init__(self, kind, indices=None):
        self.kind = kind
        self.indices = indices

    @classmethod
    def direct(cls):
        return cls(cls.DIRECT)

    @classmethod
    def index_to_direct(cls, indices):
        return cls(cls.INDEX_TO_DIRECT, np.asarray(indices, dtype=np.uint32))

    @property
    def has_indices(self):
        return self.kind == self.INDEX_TO_DIRECT

    def __eq__(self, other):
        if not isinstance(other, ReferenceMode):
            return NotImplemented
        if self.kind != other.kind:
            return False
        if self.has_indices:
            return np.array_equal(self.indices, other.indices)
        return True

    __hash__ = None

    def __repr__(self):
        if self.has_indices:
            return f"ReferenceMode.IndexToDirect({len(self.indices)} indices)"
        return "ReferenceMode.Direct"


# ReferenceInformationType value -> reference kind
_REFERENCE_TYPES = {
    "Direct": ReferenceMode.DIRECT,
    "IndexToDirect": ReferenceMode.INDEX_TO_DIRECT,
    "Index": ReferenceMode.INDEX_TO_DIRECT,   # pre-6.0 spelling
}


class LayerElement:
    """One attribute stream of a mesh.

    Attributes:
        channel: layer element channel number
        name: element name (often empty)
        mapping_mode: MappingMode constant
        reference_mode: ReferenceMode
        data: (N, width) float32 array, or None (materials carry no data)
    """

    __slots__ = ('channel', 'name', 'mapping_mode', 'reference_mode', 'data')

    def __init__(self, channel, name, mapping_mode, reference_mode, data=None):
        self.channel = channel
        self.name = name
        self.mapping_mode = mapping_mode
        self.reference_mode = reference_mode
        self.data = data

    def __repr__(self):
        size = None if self.data is None else len(self.data)
        return (
            f"LayerElement(channel={self.channel}, name={self.name!r}, "
            f"{self.mapping_mode}, {self.reference_mode!r}, data={size})"
        )


class Layer:
    """A layer: which layer elements (by typed index) belong together."""

    __slots__ = ('channel', 'material', 'normal', 'uv')

    def __init__(self, channel, material=None, normal=None, uv=None):
        self.channel = channel
        self.material = material if material is not None else []
        self.normal = normal if normal is not None else []
        self.uv = uv if uv is not None else []

    def __repr__(self):
        return (
            f"Layer(channel={self.channel}, material={self.material}, "
            f"normal={self.normal}, uv={self.uv})"
        )


class VertexIndex:
    """Polygon vertex index of a mesh, before or after triangulation.

    NOT_TRIANGULATED holds the raw int32 index with one's-complement
    polygon terminators. TRIANGULATED holds uint32 control point indices,
    three per triangle, with no terminators.
    """

    NOT_TRIANGULATED = "not_triangulated"
    TRIANGULATED = "triangulated"

    __slots__ = ('kind', 'indices')

    def __init__(self, kind, indices):
        self.kind = kind
        self.indices = indices

    @classmethod
    def not_triangulated(cls, indices):
        return cls(cls.NOT_TRIANGULATED, np.asarray(indices, dtype=np.int32))

    @classmethod
    def triangulated(cls, indices):
        return cls(cls.TRIANGULATED, np.asarray(indices, dtype=np.uint32))

    @property
    def is_triangulated(self):
        return self.kind == self.TRIANGULATED

    def __len__(self):
        return len(self.indices)

    def __repr__(self):
        return f"VertexIndex({self.kind}, {len(self.indices)} indices)"


class TriangulationInfo:
    __slots__ = ('tri_vertex_index', 'tri_pvi_to_src_pvi', 'tri_poly_to_src_poly')

    def __init__(self, tri_vertex_index, tri_pvi_to_src_pvi, tri_poly_to_src_poly):
        self.tri_vertex_index = tri_vertex_index
        self.tri_pvi_to_src_pvi = tri_pvi_to_src_pvi
        self.tri_poly_to_src_poly = tri_poly_to_src_poly


class Mesh:
    """Geometry(Mesh) object.

    Attributes:
        id: object id
        name: object name
        vertices: (N, 3) float32 control points
        polygon_vertex_index: VertexIndex
        layer_element_materials: list of LayerElement (data is None)
        layer_element_normals: list of LayerElement with (N, 3) data
        layer_element_uvs: list of LayerElement with (N, 2) data
        layers: list of Layer
    """

    __slots__ = ('id', 'name', 'vertices', 'polygon_vertex_index',
                 'layer_element_materials', 'layer_element_normals',
                 'layer_element_uvs', 'layers')

    def __init__(self, object_id, name, vertices, polygon_vertex_index,
                 layer_element_materials=None, layer_element_normals=None,
                 layer_element_uvs=None, layers=None):
        self.id = object_id
        self.name = name
        self.vertices = vertices
        self.polygon_vertex_index = polygon_vertex_index
        self.layer_element_materials = layer_element_materials or []
        self.layer_element_normals = layer_element_normals or []
        self.layer_element_uvs = layer_element_uvs or []
        self.layers = layers or []

    @property
    def is_triangulated(self):
        return self.polygon_vertex_index.is_triangulated

    def iter_layer_elements(self):
        yield from self.layer_element_materials
        yield from self.layer_element_normals
        yield from self.layer_element_uvs

    def triangulate(self, triangulator=triangulate_polygon):
        """Triangulate every polygon in place.

        ``vertices`` is left untouched; the polygon vertex index and the
        layer elements mapped by polygon vertex or by polygon are rewritten.
        Calling this on an already triangulated mesh does nothing.

        Args:
            triangulator: callable(vertices, poly_indices, target) -> int

        Returns:
            True if the mesh was triangulated by this call

        Raises:
            UnsupportedDataError: if the result has more than 2**32 - 1 indices
            ValueError: if a layer element is too short for its mapping
        """
        if self.is_triangulated:
            return False
        info = self._triangulate_polygon_index(triangulator)
        remapped = [
            (element, _remap_layer_element(element, info))
            for element in self.iter_layer_elements()
        ]
        # Commit only once every element remapped cleanly.
        self.polygon_vertex_index = VertexIndex.triangulated(info.tri_vertex_index)
        for element, (data, reference_mode) in remapped:
            element.data = data
            element.reference_mode = reference_mode
        return True

    def _triangulate_polygon_index(self, triangulator):
        tri_vertex_index = []
        tri_pvi_to_src_pvi = []
        tri_poly_to_src_poly = []

        polygon = []
        poly_index = 0
        for pv_index, pv in enumerate(self.polygon_vertex_index.indices.tolist()):
            if pv >= 0:
                polygon.append(pv)
                continue
            polygon.append(~pv)
            start_pv_index = pv_index - (len(polygon) - 1)

            local = []
            count = triangulator(self.vertices, polygon, local)
            if count * 3 != len(local):
                raise ValueError(
                    f"Triangulator returned {count} triangles but emitted "
                    f"{len(local)} indices")

            tri_vertex_index.extend(polygon[i] for i in local)
            tri_pvi_to_src_pvi.extend(start_pv_index + i for i in local)
            tri_poly_to_src_poly.extend([poly_index] * count)
            poly_index += 1
            polygon = []

        if polygon:
            _log.warning(
                "Polygon vertex index of mesh (id=%d, name=`%s`) didn't end with "
                "a negative number; last polygon dropped", self.id, self.name)

        if len(tri_vertex_index) > MAX_TRIANGULATED_INDEX_COUNT:
            raise UnsupportedDataError(
                f"Too many triangles in mesh (id={self.id}, name=`{self.name}`): "
                f"{len(tri_vertex_index)} vertex indices")

        return TriangulationInfo(
            np.array(tri_vertex_index, dtype=np.uint32),
            np.array(tri_pvi_to_src_pvi, dtype=np.int64),
            np.array(tri_poly_to_src_poly, dtype=np.int64),
        )

    def triangulated_index_list(self):
        """Control point indices of the triangles, three per triangle.

        Raises:
            ValueError: if the mesh has not been triangulated
        """
        if not self.is_triangulated:
            raise ValueError(
                f"Mesh (id={self.id}, name=`{self.name}`) is not triangulated")
        return self.polygon_vertex_index.indices

    def __repr__(self):
        return (
            f"Mesh(id={self.id}, name={self.name!r}, vertices={len(self.vertices)}, "
            f"{self.polygon_vertex_index!r})"
        )


def _remap_layer_element(element, info):
    """New (data, reference_mode) of a layer element after triangulation."""
    mode = element.mapping_mode
    if mode == MappingMode.BY_POLYGON_VERTEX:
        mapping = info.tri_pvi_to_src_pvi
    elif mode == MappingMode.BY_POLYGON:
        mapping = info.tri_poly_to_src_poly
    else:
        # Control points, edges and whole-surface data don't depend on polygons.
        return element.data, element.reference_mode

    try:
        if element.reference_mode.has_indices:
            indices = element.reference_mode.indices[mapping]
            return element.data, ReferenceMode.index_to_direct(indices)
        if element.data is None:
            return None, element.reference_mode
        return element.data[mapping], element.reference_mode
    except IndexError as e:
        raise ValueError(
            f"Layer element `{element.name}` ({mode}) is too short for the mesh: {e}"
        ) from e


class Shape:
    """Geometry(Shape) object: blend shape target offsets.

    Attributes:
        indices: uint32 control point indices of the target mesh
        vertices: (N, 3) float32 offsets
        normals: (N, 3) float32, or None
    """

    __slots__ = ('id', 'name', 'indices', 'vertices', 'normals')

    def __init__(self, object_id, name, indices, vertices, normals=None):
        self.id = object_id
        self.name = name
        self.indices = indices
        self.vertices = vertices
        self.normals = normals

    def __repr__(self):
        return f"Shape(id={self.id}, name={self.name!r}, indices={len(self.indices)})"


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def _vec3_array(properties):
    values = get_first(properties, "as_vec_f32")
    return vectors_from_array(values, 3)


def _index_array(properties):
    indices = get_first(properties, "extract_vec_i32")
    if indices is None:
        return None
    return indices.astype(np.uint32)


class LayerElementLoader(NodeLoader):
    """Loads one ``LayerElement*`` node.

    Args:
        channel: channel number from the node's first cell
        data_node_name: child holding the data array ("" for none)
        index_node_name: child holding the IndexToDirect indices
        width: components per datum (0 for elements without data)
        profile: active LoadProfile
    """

    def __init__(self, channel, data_node_name, index_node_name, width, profile):
        self.channel = channel
        self.data_node_name = data_node_name
        self.index_node_name = index_node_name
        self.width = width
        self.profile = profile
        self.name = None
        self.mapping_mode = None
        self.reference_kind = None
        self.data = None
        self.index = None

    @classmethod
    def from_node_properties(cls, properties, data_node_name, index_node_name, width, profile):
        channel = get_first(properties, "get_i32")
        if channel is None:
            _log.error(
                "Invalid property at `/Objects/Geometry(Mesh)/LayerElement*`: "
                "not found or type error")
            return None
        return cls(channel, data_node_name, index_node_name, width, profile)

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(
                properties, self.profile.versions.layer_element,
                "/Objects/Geometry(Mesh)/LayerElement*")
        elif name == "Name":
            self.name = get_first(properties, "get_string")
        elif name == "MappingInformationType":
            value = get_first(properties, "get_string")
            if value is None:
                _log.error(
                    "Invalid property at `/Objects/Geometry(Mesh)/LayerElement*/"
                    "MappingInformationType`: not found or type error")
            else:
                self.mapping_mode = MappingMode.from_string(value)
        elif name == "ReferenceInformationType":
            value = get_first(properties, "get_string")
            kind = _REFERENCE_TYPES.get(value)
            if kind is None:
                _log.error(
                    "Invalid property at `/Objects/Geometry(Mesh)/LayerElement*/"
                    "ReferenceInformationType`: unsupported value `%s`", value)
            self.reference_kind = kind
        elif self.data_node_name and name == self.data_node_name:
            if self.width:
                self.data = vectors_from_array(get_first(properties, "as_vec_f32"), self.width)
        elif name == self.index_node_name:
            self.index = _index_array(properties)
        elif name == "NormalsW":
            pass
        else:
            _log.warning("Unknown node: `/Objects/Geometry(Mesh)/LayerElement*/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        reference_mode = None
        if self.reference_kind == ReferenceMode.DIRECT:
            reference_mode = ReferenceMode.direct()
        elif self.reference_kind == ReferenceMode.INDEX_TO_DIRECT and self.index is not None:
            reference_mode = ReferenceMode.index_to_direct(self.index)

        if self.name is None or self.mapping_mode is None or reference_mode is None:
            _log.error("Required property not found for `/Objects/Geometry(Mesh)/LayerElement*`")
            return None
        return LayerElement(self.channel, self.name, self.mapping_mode, reference_mode, self.data)


class LayerEntryLoader(NodeLoader):
    """Loads ``Layer/LayerElement``: (type name, typed index)."""

    def __init__(self):
        self.layer_element_type = None
        self.typed_index = None

    def on_child_node(self, reader, name, properties):
        if name == "Type":
            self.layer_element_type = get_first(properties, "get_string")
        elif name == "TypedIndex":
            self.typed_index = get_first(properties, "get_i32")
        else:
            _log.warning("Unknown node: `/Objects/Geometry(Mesh)/Layer/LayerElement/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.layer_element_type is None or self.typed_index is None:
            _log.error(
                "Required property not found for `/Objects/Geometry(Mesh)/Layer/LayerElement`")
            return None
        return self.layer_element_type, self.typed_index


class LayerLoader(NodeLoader):

    # LayerElement type -> Layer attribute
    ELEMENT_TYPES = {
        "LayerElementMaterial": 'material',
        "LayerElementNormal": 'normal',
        "LayerElementUV": 'uv',
    }

    def __init__(self, channel, profile):
        self.layer = Layer(channel)
        self.profile = profile

    @classmethod
    def from_node_properties(cls, properties, profile):
        channel = get_first(properties, "get_i32")
        if channel is None:
            _log.error("Invalid property at `/Objects/Geometry(Mesh)/Layer`: type error")
            return None
        return cls(channel, profile)

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(
                properties, self.profile.versions.layer, "/Objects/Geometry(Mesh)/Layer")
            ignore_current_node(reader)
        elif name == "LayerElement":
            entry = LayerEntryLoader().load(reader)
            if entry is None:
                return
            type_name, typed_index = entry
            attr = self.ELEMENT_TYPES.get(type_name)
            if attr is None:
                _log.error("Unsupported layer element type: `%s`", type_name)
            else:
                getattr(self.layer, attr).append(typed_index)
        else:
            _log.warning("Unknown node: `/Objects/Geometry(Mesh)/Layer/%s`", name)
            ignore_current_node(reader)

    def on_finish(self):
        return self.layer


class MeshLoader(NodeLoader):
    """Loads ``/Objects/Geometry(Mesh)``."""

    # node name -> (Mesh attribute, data node, index node, data width)
    LAYER_ELEMENTS = {
        "LayerElementMaterial": ('layer_element_materials', "", "Materials", 0),
        "LayerElementNormal": ('layer_element_normals', "Normals", "NormalsIndex", 3),
        "LayerElementUV": ('layer_element_uvs', "UV", "UVIndex", 2),
    }

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.vertices = None
        self.polygon_vertex_index = None
        self.layer_elements = {attr: [] for attr, _, _, _ in self.LAYER_ELEMENTS.values()}
        self.layers = []

    def on_child_node(self, reader, name, properties):
        profile = self.ctx.profile
        if name == "Vertices":
            self.vertices = _vec3_array(properties)
            ignore_current_node(reader)
        elif name == "PolygonVertexIndex":
            self.polygon_vertex_index = get_first(properties, "extract_vec_i32")
            ignore_current_node(reader)
        elif name == "GeometryVersion":
            check_node_version(properties, profile.versions.geometry, "/Objects/Geometry(Mesh)")
            ignore_current_node(reader)
        elif name in self.LAYER_ELEMENTS:
            attr, data_node, index_node, width = self.LAYER_ELEMENTS[name]
            loader = LayerElementLoader.from_node_properties(
                properties, data_node, index_node, width, profile)
            if loader is None:
                ignore_current_node(reader)
                return
            element = loader.load(reader)
            if element is not None:
                self.layer_elements[attr].append(element)
        elif name == "Layer":
            loader = LayerLoader.from_node_properties(properties, profile)
            if loader is None:
                ignore_current_node(reader)
                return
            self.layers.append(loader.load(reader))
        elif name == "Edges":
            ignore_current_node(reader)
        else:
            _log.warning("Unknown node: `/Objects/Geometry(Mesh)/%s`", name)
            ignore_current_node(reader)

    def on_finish(self):
        if self.vertices is None or self.polygon_vertex_index is None:
            _log.error(
                "Required property not found for `/Objects/Geometry(Mesh)` (id=%d)",
                self.obj_props.id)
            return None
        return Mesh(
            self.obj_props.id,
            self.obj_props.name,
            self.vertices,
            VertexIndex.not_triangulated(self.polygon_vertex_index),
            layer_element_materials=self.layer_elements['layer_element_materials'],
            layer_element_normals=self.layer_elements['layer_element_normals'],
            layer_element_uvs=self.layer_elements['layer_element_uvs'],
            layers=self.layers,
        )


class ShapeLoader(NodeLoader):
    """Loads ``/Objects/Geometry(Shape)``."""

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.indices = None
        self.vertices = None
        self.normals = None

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(
                properties, self.ctx.profile.versions.shape, "/Objects/Geometry(Shape)")
        elif name == "Indexes":
            indices = get_first(properties, "get_vec_i32")
            self.indices = indices.astype(np.uint32) if indices is not None else None
        elif name == "Vertices":
            self.vertices = _vec3_array(properties)
        elif name == "Normals":
            self.normals = _vec3_array(properties)
        else:
            _log.warning("Unknown node: `/Objects/Geometry(Shape)/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.indices is None or self.vertices is None:
            _log.error(
                "Required property not found for `/Objects/Geometry(Shape)` (id=%d)",
                self.obj_props.id)
            return None
        return Shape(self.obj_props.id, self.obj_props.name,
                     self.indices, self.vertices, self.normals)
