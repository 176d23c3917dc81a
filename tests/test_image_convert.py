import struct

import pytest

from fbx_scene.utils.image_convert import (
    ImageConverter, RawImageConverter, sniff_image,
    FORMAT_PNG, FORMAT_JPEG, FORMAT_BMP, FORMAT_DDS, FORMAT_GIF, FORMAT_TGA, FORMAT_UNKNOWN,
)


def png(width, height):
    return b"\x89PNG\r\n\x1a\n" + struct.pack(">I4sII", 13, b"IHDR", width, height)


def jpeg(width, height):
    app0 = b"\xff\xe0" + struct.pack(">H", 16) + b"JFIF\x00" + b"\x00" * 9
    sof0 = b"\xff\xc0" + struct.pack(">HBHHB", 11, 8, height, width, 3) + b"\x00" * 3
    return b"\xff\xd8" + app0 + sof0 + b"\xff\xd9"


@pytest.mark.parametrize("data, filename, expected", [
    (png(64, 32), "a.png", (FORMAT_PNG, 64, 32)),
    (jpeg(640, 480), "a.jpg", (FORMAT_JPEG, 640, 480)),
    (b"BM" + b"\x00" * 16 + struct.pack("<ii", 8, -4), "a.bmp", (FORMAT_BMP, 8, 4)),
    (b"DDS " + struct.pack("<II", 124, 0) + struct.pack("<II", 16, 32), "a.dds", (FORMAT_DDS, 32, 16)),
    (b"GIF89a" + struct.pack("<HH", 3, 5), "a.gif", (FORMAT_GIF, 3, 5)),
    (b"\x00" * 12 + struct.pack("<HH", 128, 256) + b"\x20\x00", "C:/tex/A.TGA", (FORMAT_TGA, 128, 256)),
    (b"\x00" * 18, "a.psd", (FORMAT_UNKNOWN, 0, 0)),
])
def test_sniff_image(data, filename, expected):
    assert sniff_image(data, filename) == expected


def test_truncated_headers_keep_format():
    assert sniff_image(b"\x89PNG\r\n\x1a\n", "a.png") == (FORMAT_PNG, 0, 0)
    assert sniff_image(b"\xff\xd8\xff\xe0", "a.jpg") == (FORMAT_JPEG, 0, 0)


def test_raw_converter_keeps_bytes():
    image = RawImageConverter().binary_to_image(bytearray(png(2, 2)), "a.png")
    assert isinstance(image.data, bytes)
    assert image.filename == "a.png"
    assert (image.format, image.width, image.height) == (FORMAT_PNG, 2, 2)


def test_base_converter_is_abstract():
    with pytest.raises(NotImplementedError):
        ImageConverter().binary_to_image(b"", "a.png")
