import io
import os

import pytest
from PIL import Image

from components.mediastorage.transform import ImageTransformer
from components.objectstore.errors import ErrorKind, StorageError


def gradient_png(size=400) -> bytes:
    img = Image.new("RGB", (size, size))
    img.putdata([(x % 256, y % 256, (x + y) % 256) for y in range(size) for x in range(size)])
    buf = io.BytesIO()
    img.save(buf, format="PNG", compress_level=0)
    return buf.getvalue()


def noise_png(side=200) -> bytes:
    img = Image.frombytes("RGB", (side, side), os.urandom(side * side * 3))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def animated_gif() -> bytes:
    frames = [Image.new("RGB", (32, 32), color) for color in ((255, 0, 0), (0, 255, 0), (0, 0, 255))]
    buf = io.BytesIO()
    frames[0].save(buf, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)
    return buf.getvalue()


@pytest.mark.asyncio
async def test_png_is_reencoded_as_smaller_webp():
    data = gradient_png()
    out = await ImageTransformer(quality=80).transform(data, "image/png", "photo.png")
    assert out.used_original is False
    assert out.content_type == "image/webp"
    assert out.output_name.endswith(".webp")
    assert len(out.data) < len(data)
    assert Image.open(io.BytesIO(out.data)).format == "WEBP"


def test_output_is_never_larger_than_input():
    data = noise_png()
    out = ImageTransformer().transform_sync(data, "image/png", "noise.png")
    assert len(out.data) <= len(data)
    if out.used_original:
        assert out.data == data
        assert out.content_type == "image/png"
        assert out.output_name.endswith(".png")
    else:
        assert out.content_type == "image/webp"


def test_animated_gif_stays_gif():
    data = animated_gif()
    out = ImageTransformer().transform_sync(data, "image/gif", "wave.gif")
    assert out.content_type == "image/gif"
    assert out.output_name.endswith(".gif")


def test_undecodable_image_is_a_bad_request():
    with pytest.raises(StorageError) as ei:
        ImageTransformer().transform_sync(b"definitely not an image", "image/jpeg", "x.jpg")
    assert ei.value.kind is ErrorKind.BAD_REQUEST
