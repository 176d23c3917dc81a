"""Material, texture and video objects.

Handles decoding of:
- Material: shading model, multi-layer flag, lambert/phong parameters
- Texture: file references plus blend/wrap settings from Properties70
- Video(Clip): source file references and the embedded file content

Template defaults used (from /Definitions):

    (Material, FbxSurfaceLambert)   lambert parameters
    (Material, FbxSurfacePhong)     phong-only parameters
    (Texture, FbxFileTexture)       CurrentTextureBlendMode, PremultiplyAlpha,
                                    UVSet, WrapModeU, WrapModeV
    (Video, FbxVideo)               Path

Colors are (r, g, b) float tuples, factors are floats. Lambert/phong fields
missing from both the instance and the template stay at zero.
"""

import logging

from ..fbx_format.fbx_constants import NODE_PROPERTIES70
from ..fbx_format.node_loader import (
    NodeLoader, ignore_current_node, get_first,
    check_node_version, check_node_type, separate_name_class,
)
from ..property import GenericPropertiesLoader, get_or_default, get_value_or_default


_log = logging.getLogger("fbx_scene.materials")


# ---------------------------------------------------------------------------
# Shading parameters
# ---------------------------------------------------------------------------

SHADING_LAMBERT = "lambert"
SHADING_PHONG = "phong"
SHADING_UNKNOWN = "unknown"

_BLACK = (0.0, 0.0, 0.0)

# (attribute, property name, is color)
LAMBERT_FIELDS = (
    ('emissive', "EmissiveColor", True),
    ('emissive_factor', "EmissiveFactor", False),
    ('ambient', "AmbientColor", True),
    ('ambient_factor', "AmbientFactor", False),
    ('diffuse', "DiffuseColor", True),
    ('diffuse_factor', "DiffuseFactor", False),
    ('normal_map', "NormalMap", True),
    ('bump', "Bump", True),
    ('transparent_color', "TransparentColor", True),
    ('transparency_factor', "TransparencyFactor", False),
    ('displacement_color', "DisplacementColor", True),
    ('displacement_factor', "DisplacementFactor", False),
    ('vector_displacement_color', "VectorDisplacementColor", True),
    ('vector_displacement_factor', "VectorDisplacementFactor", False),
)

PHONG_FIELDS = (
    ('specular', "SpecularColor", True),
    ('specular_factor', "SpecularFactor", False),
    ('shininess', "Shininess", False),
    ('reflection', "ReflectionColor", True),
    ('reflection_factor', "ReflectionFactor", False),
)


def _load_fields(target, fields, properties, defaults):
    for attr, key, is_color in fields:
        node = get_or_default(properties, defaults, key)
        if node is None:
            continue
        value = node.value.get_color() if is_color else node.value.get_f32()
        if value is not None:
            setattr(target, attr, value)


class LambertParameters:
    """Lambert surface parameters."""

    __slots__ = tuple(attr for attr, _, _ in LAMBERT_FIELDS)

    def __init__(self):
        for attr, _, is_color in LAMBERT_FIELDS:
            setattr(self, attr, _BLACK if is_color else 0.0)

    @classmethod
    def from_properties(cls, properties, templates):
        params = cls()
        defaults = templates.get("Material", "FbxSurfaceLambert")
        _load_fields(params, LAMBERT_FIELDS, properties, defaults)
        return params

    def __eq__(self, other):
        if not isinstance(other, LambertParameters):
            return NotImplemented
        return all(getattr(self, a) == getattr(other, a) for a in self.__slots__)

    __hash__ = None

    def __repr__(self):
        return f"LambertParameters(diffuse={self.diffuse}, diffuse_factor={self.diffuse_factor})"


class PhongParameters:
    """Phong surface parameters; the lambert part is read separately."""

    __slots__ = ('lambert',) + tuple(attr for attr, _, _ in PHONG_FIELDS)

    def __init__(self):
        self.lambert = LambertParameters()
        for attr, _, is_color in PHONG_FIELDS:
            setattr(self, attr, _BLACK if is_color else 0.0)

    @classmethod
    def from_properties(cls, properties, templates):
        params = cls()
        # The lambert subset resolves against the lambert template.
        params.lambert = LambertParameters.from_properties(properties, templates)
        defaults = templates.get("Material", "FbxSurfacePhong")
        _load_fields(params, PHONG_FIELDS, properties, defaults)
        return params

    def __repr__(self):
        return (
            f"PhongParameters({self.lambert!r}, specular={self.specular}, "
            f"shininess={self.shininess})"
        )


class ShadingParameters:
    """Shading model dependent parameters.

    ``kind`` is SHADING_LAMBERT, SHADING_PHONG or SHADING_UNKNOWN; ``value``
    is LambertParameters, PhongParameters, or the raw instance
    GenericProperties (possibly None) for unknown models.
    """

    __slots__ = ('kind', 'value')

    def __init__(self, kind, value):
        self.kind = kind
        self.value = value

    @classmethod
    def from_properties(cls, shading_model, properties, templates):
        if shading_model == SHADING_LAMBERT:
            return cls(SHADING_LAMBERT, LambertParameters.from_properties(properties, templates))
        if shading_model == SHADING_PHONG:
            return cls(SHADING_PHONG, PhongParameters.from_properties(properties, templates))
        _log.warning("Shading model `%s` is unknown and unsupported", shading_model)
        return cls(SHADING_UNKNOWN, properties)

    def __repr__(self):
        return f"ShadingParameters({self.kind}, {self.value!r})"


class Material:
    __slots__ = ('id', 'name', 'shading_model', 'multi_layer', 'shading_parameters')

    def __init__(self, object_id, name, shading_model, multi_layer, shading_parameters):
        self.id = object_id
        self.name = name
        self.shading_model = shading_model
        self.multi_layer = multi_layer
        self.shading_parameters = shading_parameters

    def __repr__(self):
        return f"Material(id={self.id}, name={self.name!r}, {self.shading_model})"


class MaterialLoader(NodeLoader):
    """Loads ``/Objects/Material``."""

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.properties = None
        self.shading_model = None
        self.multi_layer = None

    def on_child_node(self, reader, name, properties):
        if name == "Version":
            check_node_version(properties, self.ctx.profile.versions.material, "/Objects/Material")
        elif name == "ShadingModel":
            self.shading_model = get_first(properties, "get_string")
        elif name == "MultiLayer":
            value = get_first(properties, "as_i64")
            self.multi_layer = value != 0 if value is not None else None
        elif name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
            return
        else:
            _log.warning("Unknown node: `/Objects/Material/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        if self.shading_model is None or self.multi_layer is None:
            _log.error("Required property not found for `/Objects/Material` (id=%d)",
                       self.obj_props.id)
            return None
        shading_parameters = ShadingParameters.from_properties(
            self.shading_model, self.properties, self.ctx.templates)
        return Material(self.obj_props.id, self.obj_props.name,
                        self.shading_model, self.multi_layer, shading_parameters)


# ---------------------------------------------------------------------------
# Texture
# ---------------------------------------------------------------------------

class BlendMode:
    """Texture blend modes (``CurrentTextureBlendMode``)."""

    TRANSLUCENT = "Translucent"
    ADDITIVE = "Additive"
    MODULATE = "Modulate"
    MODULATE2 = "Modulate2"
    OVER = "Over"

    _VALUES = (TRANSLUCENT, ADDITIVE, MODULATE, MODULATE2, OVER)

    @classmethod
    def from_i64(cls, value):
        if value is None or not 0 <= value < len(cls._VALUES):
            return None
        return cls._VALUES[value]


class WrapMode:
    """Texture wrap modes (``WrapModeU`` / ``WrapModeV``)."""

    REPEAT = "Repeat"
    CLAMP = "Clamp"

    _VALUES = (REPEAT, CLAMP)

    @classmethod
    def from_i64(cls, value):
        if value is None or not 0 <= value < len(cls._VALUES):
            return None
        return cls._VALUES[value]


class Texture:
    """Texture object.

    Attributes:
        media: name of the Video the texture uses, or None
        filename: absolute path as written by the exporter
        relative_filename: path relative to the FBX file
        current_texture_blend_mode: BlendMode constant
        premultiply_alpha: bool
        uv_set: UV set name
        wrap_mode_u, wrap_mode_v: WrapMode constants
    """

    __slots__ = ('id', 'name', 'media', 'filename', 'relative_filename',
                 'current_texture_blend_mode', 'premultiply_alpha', 'uv_set',
                 'wrap_mode_u', 'wrap_mode_v')

    def __init__(self, object_id, name, media, filename, relative_filename,
                 current_texture_blend_mode, premultiply_alpha, uv_set,
                 wrap_mode_u, wrap_mode_v):
        self.id = object_id
        self.name = name
        self.media = media
        self.filename = filename
        self.relative_filename = relative_filename
        self.current_texture_blend_mode = current_texture_blend_mode
        self.premultiply_alpha = premultiply_alpha
        self.uv_set = uv_set
        self.wrap_mode_u = wrap_mode_u
        self.wrap_mode_v = wrap_mode_v

    def __repr__(self):
        return f"Texture(id={self.id}, name={self.name!r}, file={self.relative_filename!r})"


class TextureLoader(NodeLoader):
    """Loads ``/Objects/Texture``."""

    _IGNORED = frozenset(("ModelUVTranslation", "ModelUVScaling", "Texture_Alpha_Source", "Cropping"))

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.properties = None
        self.media = None
        self.filename = None
        self.relative_filename = None

    def on_child_node(self, reader, name, properties):
        if name == "Type":
            check_node_type(properties, "TextureVideoClip", "/Objects/Texture")
        elif name == "Version":
            check_node_version(properties, self.ctx.profile.versions.texture, "/Objects/Texture")
        elif name == "TextureName":
            name_class = separate_name_class(get_first(properties, "get_string"))
            if name_class is None:
                _log.error(
                    "Invalid property at `/Objects/Texture/TextureName`: "
                    "type error or invalid format")
            elif name_class != (self.obj_props.name, self.obj_props.class_name):
                _log.warning(
                    "`/Objects/Texture/TextureName` value is different from the "
                    "name and class at object properties")
        elif name == "Media":
            name_class = separate_name_class(get_first(properties, "get_string"))
            self.media = name_class[0] if name_class is not None else None
        elif name == "FileName":
            # `FileName` here, `Filename` in Video
            self.filename = get_first(properties, "get_string")
        elif name == "RelativeFilename":
            self.relative_filename = get_first(properties, "get_string")
        elif name in self._IGNORED:
            pass
        elif name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
            return
        else:
            _log.warning("Unknown node: `/Objects/Texture/%s`", name)
        ignore_current_node(reader)

    def on_finish(self):
        defaults = self.ctx.template("Texture", "FbxFileTexture")
        props = self.properties
        blend_mode = BlendMode.from_i64(
            get_value_or_default(props, defaults, "CurrentTextureBlendMode", "get_i64"))
        premultiply = get_value_or_default(props, defaults, "PremultiplyAlpha", "get_i64")
        uv_set = get_value_or_default(props, defaults, "UVSet", "get_string")
        wrap_u = WrapMode.from_i64(get_value_or_default(props, defaults, "WrapModeU", "get_i64"))
        wrap_v = WrapMode.from_i64(get_value_or_default(props, defaults, "WrapModeV", "get_i64"))

        required = (blend_mode, premultiply, uv_set, wrap_u, wrap_v,
                    self.filename, self.relative_filename)
        if any(v is None for v in required):
            _log.error("Required property not found for `/Objects/Texture` (id=%d)",
                       self.obj_props.id)
            return None
        return Texture(
            self.obj_props.id, self.obj_props.name, self.media,
            self.filename, self.relative_filename,
            blend_mode, premultiply != 0, uv_set, wrap_u, wrap_v,
        )


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------

class Video:
    """Video(Clip) object.

    ``content`` is whatever the ImageConverter returned for the embedded
    file, or None when the file was not embedded.
    """

    __slots__ = ('id', 'name', 'path', 'use_mip_map', 'filename',
                 'relative_filename', 'content')

    def __init__(self, object_id, name, path, use_mip_map, filename,
                 relative_filename, content=None):
        self.id = object_id
        self.name = name
        self.path = path
        self.use_mip_map = use_mip_map
        self.filename = filename
        self.relative_filename = relative_filename
        self.content = content

    def __repr__(self):
        embedded = ", embedded" if self.content is not None else ""
        return f"Video(id={self.id}, name={self.name!r}, {self.relative_filename!r}{embedded})"


class VideoLoader(NodeLoader):
    """Loads ``/Objects/Video(Clip)``."""

    def __init__(self, obj_props, ctx):
        self.obj_props = obj_props
        self.ctx = ctx
        self.properties = None
        self.use_mip_map = None
        self.filename = None
        self.relative_filename = None
        self.content = None

    def on_child_node(self, reader, name, properties):
        if name == "Type":
            check_node_type(properties, "Clip", "/Objects/Video")
        elif name == "UseMipMap":
            value = get_first(properties, "get_i32")
            self.use_mip_map = value != 0 if value is not None else None
        elif name == "Filename":
            self.filename = get_first(properties, "get_string")
        elif name == "RelativeFilename":
            self.relative_filename = get_first(properties, "get_string")
        elif name == "Content":
            self._load_content(properties)
        elif name == NODE_PROPERTIES70:
            self.properties = GenericPropertiesLoader(70).load(reader)
            return
        else:
            _log.warning("Unknown node: `/Objects/Video/%s`", name)
        ignore_current_node(reader)

    def _load_content(self, properties):
        if self.filename is None:
            _log.error(
                "`/Objects/Video(Clip)/Filename` should be read before "
                "`/Objects/Video(Clip)/Content`")
            return
        data = get_first(properties, "get_binary")
        if data is None:
            return
        self.content = self.ctx.converter.binary_to_image(data, self.filename)

    def on_finish(self):
        defaults = self.ctx.template("Video", "FbxVideo")
        path = get_value_or_default(self.properties, defaults, "Path", "get_string")
        required = (path, self.use_mip_map, self.filename, self.relative_filename)
        if any(v is None for v in required):
            _log.error("Required property not found for `/Objects/Video` (id=%d)",
                       self.obj_props.id)
            return None
        return Video(self.obj_props.id, self.obj_props.name, path, self.use_mip_map,
                     self.filename, self.relative_filename, self.content)
