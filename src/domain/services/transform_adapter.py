"""Capability boundary between the edition core and the pixel engine.

The adapter decodes rendered bytes with Pillow into the float32 [0, 1] arrays
`ProcessingService` works on, runs one transform, and encodes the result back
in the source format. Every call is a pure function of (bytes, transform).
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from src.domain.entities.transform import (
    CropTransform,
    FlipTransform,
    ResizeTransform,
    RotateTransform,
    Transform,
)
from src.domain.errors import InvalidParametersError, TransformFailedError
from src.domain.services.processing_service import ProcessingService

logger = logging.getLogger(__name__)

# Transforms are CPU bound; a small pool keeps a slow image from starving other assets
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="transform")

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class TransformResult:
    data: bytes
    width: int
    height: int
    content_type: str
    size: int


@dataclass
class ImageProbe:
    width: int
    height: int
    format: str
    mime_type: str
    mode: str


def format_for_filename(file_name: str) -> str | None:
    """Pillow format name for a file extension, e.g. ``a.jpg`` -> ``JPEG``."""
    ext = os.path.splitext(file_name)[1].lower()
    if not ext:
        return None
    return Image.registered_extensions().get(ext)


class TransformAdapter:
    def __init__(
        self,
        processing: ProcessingService | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.processing = processing or ProcessingService()
        if timeout_seconds is None:
            timeout_seconds = float(
                os.getenv("EDITION_TRANSFORM_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
            )
        self.timeout_seconds = timeout_seconds

    def probe(self, data: bytes) -> ImageProbe | None:
        """Read dimensions and format of encoded image bytes, or None if Pillow can't."""
        try:
            with Image.open(BytesIO(data)) as img:
                fmt = img.format or "PNG"
                return ImageProbe(
                    width=img.width,
                    height=img.height,
                    format=fmt,
                    mime_type=Image.MIME.get(fmt, "application/octet-stream"),
                    mode=img.mode,
                )
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError):
            return None

    def apply(self, source: bytes, transform: Transform, fmt: str | None = None) -> TransformResult:
        """Run `transform` on `source` within the configured timeout.

        Raises:
            InvalidParametersError: the transform does not fit the decoded source.
            TransformFailedError: undecodable input, engine error, or timeout.
        """
        transform.validate()
        future = _executor.submit(self._apply, source, transform, fmt)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            logger.warning("Transform %s exceeded %ss timeout", transform.kind, self.timeout_seconds)
            raise TransformFailedError(
                f"{transform.kind} timed out after {self.timeout_seconds:g}s"
            ) from exc

    def _apply(self, source: bytes, transform: Transform, fmt: str | None) -> TransformResult:
        array, decoded_format = self._decode(source)
        height, width = array.shape[:2]
        if isinstance(transform, CropTransform):
            transform.check_bounds(width, height)
        try:
            out = self._dispatch(array, transform)
        except ValueError as exc:
            raise TransformFailedError(f"{transform.kind} failed: {exc}") from exc
        return self._encode(out, fmt or decoded_format)

    def _dispatch(self, array: np.ndarray, transform: Transform) -> np.ndarray:
        if isinstance(transform, CropTransform):
            return self.processing.crop(
                array, transform.x, transform.y, transform.width, transform.height
            )
        elif isinstance(transform, RotateTransform):
            return self.processing.rotate(array, transform.degrees)
        elif isinstance(transform, ResizeTransform):
            return self.processing.resize(array, transform.width, transform.height, transform.fit)
        elif isinstance(transform, FlipTransform):
            return self.processing.flip(array, transform.direction)
        raise InvalidParametersError(f"Unsupported transform: {type(transform).__name__}")

    # --------- codec ---------
    @staticmethod
    def _decode(data: bytes) -> tuple[np.ndarray, str]:
        try:
            img = Image.open(BytesIO(data))
            fmt = img.format or "PNG"
            if img.mode == "L":
                img = img.convert("L")
            elif img.mode in ("RGBA", "LA") or "transparency" in img.info:
                img = img.convert("RGBA")
            else:
                img = img.convert("RGB")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise TransformFailedError(f"Could not decode source image: {exc}") from exc
        arr = np.asarray(img).astype(np.float32) / 255.0
        return arr, fmt

    @staticmethod
    def _encode(array: np.ndarray, fmt: str) -> TransformResult:
        arr = np.clip(array, 0.0, 1.0)
        pil_arr = np.rint(arr * 255.0).astype("uint8")
        if pil_arr.ndim == 3 and pil_arr.shape[2] not in (3, 4):
            pil_arr = np.ascontiguousarray(pil_arr[..., :3])
        img = Image.fromarray(pil_arr)
        fmt = fmt.upper()
        if fmt == "JPEG" and img.mode == "RGBA":
            img = img.convert("RGB")
        buf = BytesIO()
        try:
            if fmt == "JPEG":
                img.save(buf, format=fmt, quality=95)
            else:
                img.save(buf, format=fmt)
        except (KeyError, OSError, ValueError) as exc:
            raise TransformFailedError(f"Could not encode result as {fmt}: {exc}") from exc
        data = buf.getvalue()
        return TransformResult(
            data=data,
            width=img.width,
            height=img.height,
            content_type=Image.MIME.get(fmt, "application/octet-stream"),
            size=len(data),
        )
