"""Image recompression with Pillow.

Everything except animated GIFs is re-encoded as WebP. Animated GIFs stay GIF
and are re-saved with palette optimisation. The input bytes and mimetype
win whenever the re-encoded output is not strictly smaller.
"""

from __future__ import annotations

import asyncio
import io
import logging
import time
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from components.objectstore.errors import bad_request

log = logging.getLogger("mediastorage.transform")

# decompression-bomb guard stays on; oversized inputs are rejected with a clear message
MAX_IMAGE_PIXELS = 12_000 * 12_000


@dataclass
class TransformResult:
    data: bytes
    output_name: str
    content_type: str
    used_original: bool


class ImageTransformer:
    def __init__(self, quality: int = 80):
        self.quality = quality

    async def transform(self, data: bytes, mimetype: str, filename: str) -> TransformResult:
        return await asyncio.to_thread(self.transform_sync, data, mimetype, filename)

    def transform_sync(self, data: bytes, mimetype: str, filename: str) -> TransformResult:
        stamp = int(time.time() * 1000)
        original = TransformResult(
            data=data, output_name=f"{stamp}-{filename}", content_type=mimetype, used_original=True
        )

        try:
            img = Image.open(io.BytesIO(data))
            if img.width * img.height > MAX_IMAGE_PIXELS:
                raise bad_request("Image is too large to process. Please reduce image size or dimensions.")
            animated = getattr(img, "is_animated", False) and getattr(img, "n_frames", 1) > 1

            buf = io.BytesIO()
            if mimetype == "image/gif" and animated:
                try:
                    img.save(buf, format="GIF", save_all=True, optimize=True)
                except (OSError, ValueError):
                    log.warning("transform.gif err filename=%s, keeping original", filename)
                    return original
                out = buf.getvalue()
                if len(out) < len(data):
                    return TransformResult(
                        data=out, output_name=f"compressed-{stamp}-{filename}",
                        content_type="image/gif", used_original=False,
                    )
                return original

            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA" if "transparency" in img.info or img.mode in ("LA", "PA") else "RGB")
            img.save(buf, format="WEBP", quality=self.quality)
        except (UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise bad_request("Unsupported image format. Please use JPEG, PNG, GIF, or WebP.") from e
        except OSError as e:
            raise bad_request("Unsupported image format. Please use JPEG, PNG, GIF, or WebP.") from e

        out = buf.getvalue()
        if len(out) >= len(data):
            log.info("transform.skip filename=%s original=%s webp=%s", filename, len(data), len(out))
            return original
        return TransformResult(
            data=out, output_name=f"compressed-{stamp}-{filename}.webp",
            content_type="image/webp", used_original=False,
        )
