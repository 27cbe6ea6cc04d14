"""Local image transcoding for formats browsers cannot render."""

from __future__ import annotations

import asyncio
import io
import logging

import pillow_heif
from PIL import Image, ImageOps, UnidentifiedImageError

from formvault.errors import TranscodeFailure

logger = logging.getLogger(__name__)

# Lets Image.open() read HEIC/HEIF containers.
pillow_heif.register_heif_opener()

JPEG_CONTENT_TYPE = "image/jpeg"


class ImageTranscoder:
    """Converts still images (HEIC/HEIF in practice) to JPEG.

    Decoding runs in a worker thread so the event loop keeps serving
    other loaders while a large photo is converted.
    """

    output_suffix = ".jpg"
    output_content_type = JPEG_CONTENT_TYPE

    def __init__(self, quality: int = 80) -> None:
        self.quality = quality

    def _convert(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as im:
            im = ImageOps.exif_transpose(im)
            if im.mode != "RGB":
                im = im.convert("RGB")
            out = io.BytesIO()
            im.save(out, format="JPEG", quality=self.quality)
            return out.getvalue()

    async def transcode(self, data: bytes, *, source: str = "") -> bytes:
        """Transcode image bytes to JPEG.

        Args:
            data: Source image bytes.
            source: Path or name of the source, for error messages.

        Returns:
            JPEG bytes.

        Raises:
            TranscodeFailure: Input is empty or cannot be decoded.
        """
        if not data:
            raise TranscodeFailure(source, "empty input")
        try:
            converted = await asyncio.to_thread(self._convert, data)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise TranscodeFailure(source, str(e)) from e
        logger.debug("Transcoded %s: %d -> %d bytes", source, len(data), len(converted))
        return converted
