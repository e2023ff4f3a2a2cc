"""Image normalisation: decode → pin height → re-encode as a lossy data URI.

The output height is fixed at ``base_font_size * height_rem`` pixels and the
width follows the original aspect ratio. Re-encoding runs at the top of the
quality scale: storage savings come from the downscale, not from quality
loss.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
import threading
import time

from PIL import Image, ImageOps, UnidentifiedImageError

from tierboard.config import CodecCfg
from tierboard.errors import MalformedImageInput

logger = logging.getLogger(__name__)

# JPEG has no alpha channel; transparent pixels are composited onto black,
# matching what an HTML canvas produces for image/jpeg.
_JPEG_BACKGROUND = (0, 0, 0)


def pillow_quality(quality: float) -> int:
    """Map a 0..1 quality factor onto Pillow's 1..100 scale."""
    return max(1, min(100, round(quality * 100)))


def scaled_size(width: int, height: int, target_height: int) -> tuple[int, int]:
    """Return ``(width, target_height)`` keeping the aspect ratio of *width* × *height*."""
    if width < 1 or height < 1:
        raise MalformedImageInput(f"Image has no pixels ({width}x{height})")
    scale = target_height / height
    return max(1, int(width * scale)), target_height


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into ``(mime_type, raw_bytes)``.

    Raises:
        ValueError: *uri* is not a base64 data URI.
    """
    if not uri.startswith("data:") or "," not in uri:
        raise ValueError("Not a data URI")
    header, _, payload = uri[5:].partition(",")
    mime_type, _, encoding = header.partition(";")
    if encoding != "base64":
        raise ValueError("Only base64 data URIs are supported")
    try:
        return mime_type or "application/octet-stream", base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


def image_dimensions(uri: str) -> tuple[int, int] | None:
    """Return ``(width, height)`` of an encoded image, or None if undecodable."""
    try:
        _, raw = from_data_uri(uri)
        with Image.open(io.BytesIO(raw)) as img:
            return img.size
    except (ValueError, OSError):
        return None


def _flatten(img: Image.Image, background: tuple[int, int, int]) -> Image.Image:
    """Convert *img* to RGB, compositing any alpha channel onto *background*."""
    if img.mode == "RGB":
        return img
    if img.mode == "P" and "transparency" in img.info:
        img = img.convert("RGBA")
    if img.mode in ("RGBA", "LA"):
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, background)
        flat.paste(rgba, mask=rgba.split()[-1])
        return flat
    return img.convert("RGB")


def _settle(result: asyncio.Future[str], outcome: str | BaseException) -> None:
    if result.done():
        return
    if isinstance(outcome, BaseException):
        result.set_exception(outcome)
    else:
        result.set_result(outcome)


class ImageCodec:
    """Stateless image normaliser.

    Args:
        config: Codec settings (target height, format, quality, timeout).
    """

    def __init__(self, config: CodecCfg | None = None) -> None:
        self.config = config or CodecCfg()

    @property
    def target_height(self) -> int:
        return self.config.target_height

    async def encode(self, raw: bytes) -> str:
        """Normalise *raw* image bytes into a data URI.

        Decoding runs on a daemon worker thread so the event loop keeps
        serving other ingestions. A decode that outlives ``timeout_seconds``
        is abandoned: its thread is left to finish on its own and never
        holds up loop shutdown or interpreter exit.

        Raises:
            MalformedImageInput: Empty, undecodable, or timed-out input.
        """
        if not raw:
            raise MalformedImageInput("Image payload is empty")
        loop = asyncio.get_running_loop()
        result: asyncio.Future[str] = loop.create_future()
        threading.Thread(
            target=self._work, args=(raw, loop, result), name="tierboard-codec", daemon=True
        ).start()
        timeout = self.config.timeout_seconds
        try:
            if timeout is None:
                return await result
            return await asyncio.wait_for(result, timeout)
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise MalformedImageInput(
                f"Image decode did not finish within {timeout:g}s"
            ) from exc

    def _work(self, raw: bytes, loop: asyncio.AbstractEventLoop, result: asyncio.Future[str]) -> None:
        try:
            outcome: str | BaseException = self.encode_sync(raw)
        except Exception as exc:
            outcome = exc
        try:
            loop.call_soon_threadsafe(_settle, result, outcome)
        except RuntimeError:
            # Loop already closed: the caller gave up on this decode.
            logger.debug("Discarded late decode result: %r", outcome)

    def encode_sync(self, raw: bytes) -> str:
        """Blocking variant of :meth:`encode`."""
        started = time.perf_counter()
        try:
            with Image.open(io.BytesIO(raw)) as img:
                img.load()
                frame = ImageOps.exif_transpose(img)
                size = scaled_size(frame.width, frame.height, self.target_height)
                resized = frame.resize(size, Image.Resampling.LANCZOS)
        except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
            raise MalformedImageInput(f"Cannot decode image: {exc}") from exc
        except (OSError, ValueError, SyntaxError) as exc:
            raise MalformedImageInput(f"Cannot decode image: {exc}") from exc

        fmt = self.config.format
        if fmt == "JPEG":
            resized = _flatten(resized, _JPEG_BACKGROUND)
        elif resized.mode not in ("RGB", "RGBA"):
            resized = resized.convert("RGBA")

        buffer = io.BytesIO()
        resized.save(buffer, format=fmt, quality=pillow_quality(self.config.quality))
        encoded = buffer.getvalue()

        logger.debug(
            "Encoded %d-byte image to %dx%d %s (%d bytes) in %.1f ms",
            len(raw), size[0], size[1], fmt, len(encoded),
            (time.perf_counter() - started) * 1000,
        )
        return to_data_uri(encoded, self.config.mime_type)
