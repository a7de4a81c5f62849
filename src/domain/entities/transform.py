from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Union

from src.domain.errors import InvalidParametersError

ROTATE_DEGREES = (90, 180, 270)
RESIZE_FITS = ("cover", "contain", "fill", "inside")
FLIP_DIRECTIONS = ("horizontal", "vertical")


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParametersError(f"{name} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class CropTransform:
    x: int
    y: int
    width: int
    height: int

    kind = "crop"

    def validate(self) -> None:
        for name in ("x", "y", "width", "height"):
            _require_int(name, getattr(self, name))
        if self.width <= 0 or self.height <= 0:
            raise InvalidParametersError("Crop width and height must be greater than 0")
        if self.x < 0 or self.y < 0:
            raise InvalidParametersError("Crop x and y must not be negative")

    def check_bounds(self, source_width: int, source_height: int) -> None:
        if self.x + self.width > source_width or self.y + self.height > source_height:
            raise InvalidParametersError(
                f"Crop region {self.width}x{self.height}+{self.x}+{self.y} does not fit "
                f"within source {source_width}x{source_height}"
            )

    def params(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RotateTransform:
    degrees: int  # clockwise

    kind = "rotate"

    def validate(self) -> None:
        _require_int("degrees", self.degrees)
        if self.degrees not in ROTATE_DEGREES:
            raise InvalidParametersError(
                f"Rotation must be one of {', '.join(map(str, ROTATE_DEGREES))} degrees"
            )

    def params(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ResizeTransform:
    width: int
    height: int
    fit: str = "inside"

    kind = "resize"

    def validate(self) -> None:
        _require_int("width", self.width)
        _require_int("height", self.height)
        if self.width <= 0 or self.height <= 0:
            raise InvalidParametersError("Resize width and height must be greater than 0")
        if self.fit not in RESIZE_FITS:
            raise InvalidParametersError(f"Resize fit must be one of {', '.join(RESIZE_FITS)}")

    def params(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FlipTransform:
    direction: str

    kind = "flip"

    def validate(self) -> None:
        if self.direction not in FLIP_DIRECTIONS:
            raise InvalidParametersError(
                f"Flip direction must be one of {', '.join(FLIP_DIRECTIONS)}"
            )

    def params(self) -> dict[str, Any]:
        return asdict(self)


Transform = Union[CropTransform, RotateTransform, ResizeTransform, FlipTransform]

TRANSFORM_KINDS: dict[str, type] = {
    "crop": CropTransform,
    "rotate": RotateTransform,
    "resize": ResizeTransform,
    "flip": FlipTransform,
}


def transform_from_params(kind: str, params: dict[str, Any]) -> Transform:
    """Build and validate a transform from a loose parameter dict.

    Raises:
        InvalidParametersError: unknown kind, missing or unexpected fields, or a
            value outside the transform's contract.
    """
    cls = TRANSFORM_KINDS.get(kind.lower() if isinstance(kind, str) else kind)
    if cls is None:
        raise InvalidParametersError(f"Unsupported transform: {kind}")
    try:
        transform = cls(**params)
    except TypeError as exc:
        raise InvalidParametersError(f"Invalid parameters for {cls.kind}: {exc}") from exc
    transform.validate()
    return transform
