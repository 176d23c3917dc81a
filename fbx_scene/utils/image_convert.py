"""Conversion of embedded video/texture payloads.

``/Objects/Video/Content`` carries the raw bytes of the file the texture
was made from (PNG, JPEG, TGA, DDS, ...). Decoding pixels is up to the
caller: ``load_scene`` hands every payload to an ImageConverter and stores
whatever it returns on ``Video.content``.

The default RawImageConverter keeps the bytes and sniffs the container
format, plus the image size when the header makes that cheap:

- PNG:  IHDR chunk, big-endian width/height at offset 16
- BMP:  BITMAPINFOHEADER, little-endian width/height at offset 18
- DDS:  DDS_HEADER, little-endian height/width at offset 12
- GIF:  logical screen descriptor at offset 6
- JPEG: first SOFn marker segment
- TGA:  no magic; recognised by file extension, size at offset 12
"""

import logging
import os
import struct


_log = logging.getLogger("fbx_scene.image")


FORMAT_UNKNOWN = "unknown"
FORMAT_PNG = "png"
FORMAT_JPEG = "jpeg"
FORMAT_BMP = "bmp"
FORMAT_DDS = "dds"
FORMAT_GIF = "gif"
FORMAT_TGA = "tga"

_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
_JPEG_MAGIC = b"\xff\xd8\xff"
_DDS_MAGIC = b"DDS "

# JPEG start-of-frame markers (SOF0..SOF15 minus DHT, JPG and DAC)
_JPEG_SOF_MARKERS = frozenset(range(0xC0, 0xD0)) - {0xC4, 0xC8, 0xCC}


class ImageConverter:
    """Turns embedded image payloads into the caller's image type."""

    def binary_to_image(self, data, filename):
        """Convert one payload.

        Args:
            data: bytes of the embedded file
            filename: ``Video/Filename`` of the clip (used for format hints)

        Returns:
            any object; stored as-is on ``Video.content``
        """
        raise NotImplementedError


class RawImage:
    """An undecoded embedded image."""

    __slots__ = ('data', 'filename', 'format', 'width', 'height')

    def __init__(self, data, filename, image_format=FORMAT_UNKNOWN, width=0, height=0):
        self.data = data
        self.filename = filename
        self.format = image_format
        self.width = width            # 0 when the header was not parsed
        self.height = height

    def __repr__(self):
        return (
            f"RawImage({self.filename!r}, {self.format}, "
            f"{self.width}x{self.height}, {len(self.data)} bytes)"
        )


class RawImageConverter(ImageConverter):
    """Default converter: keeps the bytes, reads format and size."""

    def binary_to_image(self, data, filename):
        data = bytes(data)
        image_format, width, height = sniff_image(data, filename)
        if image_format == FORMAT_UNKNOWN:
            _log.debug("Unrecognised embedded image `%s` (%d bytes)", filename, len(data))
        return RawImage(data, filename, image_format, width, height)


def sniff_image(data, filename=""):
    """Identify an image container and read its dimensions.

    Returns:
        (format, width, height); width/height are 0 when unknown
    """
    try:
        if data.startswith(_PNG_MAGIC):
            if len(data) >= 24 and data[12:16] == b"IHDR":
                width, height = struct.unpack_from(">II", data, 16)
                return FORMAT_PNG, width, height
            return FORMAT_PNG, 0, 0
        if data.startswith(_JPEG_MAGIC):
            width, height = _jpeg_size(data)
            return FORMAT_JPEG, width, height
        if data.startswith(_DDS_MAGIC):
            if len(data) >= 20:
                height, width = struct.unpack_from("<II", data, 12)
                return FORMAT_DDS, width, height
            return FORMAT_DDS, 0, 0
        if data.startswith(b"BM"):
            if len(data) >= 26:
                width, height = struct.unpack_from("<ii", data, 18)
                # Negative height means a top-down bitmap
                return FORMAT_BMP, width, abs(height)
            return FORMAT_BMP, 0, 0
        if data[:6] in (b"GIF87a", b"GIF89a"):
            if len(data) >= 10:
                width, height = struct.unpack_from("<HH", data, 6)
                return FORMAT_GIF, width, height
            return FORMAT_GIF, 0, 0
    except struct.error as e:
        _log.warning("Truncated image header in `%s`: %s", filename, e)
        return FORMAT_UNKNOWN, 0, 0

    ext = os.path.splitext(str(filename))[1].lower()
    if ext == ".tga":
        if len(data) >= 18:
            width, height = struct.unpack_from("<HH", data, 12)
            return FORMAT_TGA, width, height
        return FORMAT_TGA, 0, 0
    return FORMAT_UNKNOWN, 0, 0


def _jpeg_size(data):
    """Walk JPEG marker segments up to the first SOF; (0, 0) if not found."""
    offset = 2
    while offset + 4 <= len(data):
        if data[offset] != 0xFF:
            return 0, 0
        marker = data[offset + 1]
        if marker == 0xFF:
            # Fill byte
            offset += 1
            continue
        if marker in (0xD8, 0x01) or 0xD0 <= marker <= 0xD7:
            offset += 2
            continue
        (length,) = struct.unpack_from(">H", data, offset + 2)
        if marker in _JPEG_SOF_MARKERS:
            if offset + 9 > len(data):
                return 0, 0
            height, width = struct.unpack_from(">HH", data, offset + 5)
            return width, height
        offset += 2 + length
    return 0, 0
