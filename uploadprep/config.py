"""Pipeline configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from .codec import MIME_FORMATS

DEFAULT_MIME_TYPE = "image/jpeg"
DEFAULT_QUALITY = 75


@dataclass(frozen=True)
class TargetFormat:
    """Requested output encoding.

    ``quality`` only applies to JPEG and is cleared for every other type.
    With ``force=False`` an image that is already encoded is left alone,
    whatever its type. ``disabled`` skips conversion entirely.
    """

    mime_type: str = DEFAULT_MIME_TYPE
    quality: Optional[int] = DEFAULT_QUALITY
    force: bool = True
    disabled: bool = False

    def __post_init__(self):
        if self.mime_type != "image/jpeg":
            object.__setattr__(self, "quality", None)
        elif self.quality is not None:
            if isinstance(self.quality, bool):
                raise ValueError(f"quality must be an integer, got {self.quality!r}")
            try:
                q = int(self.quality)
            except (TypeError, ValueError) as e:
                raise ValueError(f"quality must be an integer, got {self.quality!r}") from e
            if not 1 <= q <= 100:
                raise ValueError(f"quality must be within 1..100, got {q}")
            object.__setattr__(self, "quality", q)


@dataclass(frozen=True)
class PipelineConfig:
    apply_orientation: bool = True
    max_width: Optional[int] = None
    max_height: Optional[int] = None
    max_pixels: Optional[int] = None
    # don't scale when the size would change by less than 0.1%
    scale_epsilon: float = 0.001
    use_area_average_scaler: bool = True
    enable_yielding: bool = False
    target: TargetFormat = field(default_factory=TargetFormat)

    def __post_init__(self):
        for name in ("max_width", "max_height", "max_pixels"):
            v = getattr(self, name)
            if v is not None and v < 1:
                raise ValueError(f"{name} must be positive, got {v}")
        if self.scale_epsilon < 0:
            raise ValueError("scale_epsilon must not be negative")

    @property
    def has_size_limits(self) -> bool:
        return not (self.max_width is None and self.max_height is None and self.max_pixels is None)

    def with_max_megapixels(self, value: float) -> "PipelineConfig":
        return replace(self, max_pixels=int(value * 1_000_000))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apply_orientation": self.apply_orientation,
            "max_width": self.max_width,
            "max_height": self.max_height,
            "max_pixels": self.max_pixels,
            "scale_epsilon": self.scale_epsilon,
            "use_area_average_scaler": self.use_area_average_scaler,
            "enable_yielding": self.enable_yielding,
            "target": {
                "mime_type": self.target.mime_type,
                "quality": self.target.quality,
                "force": self.target.force,
                "disabled": self.target.disabled,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        """Build a config from a profile mapping; unknown keys are rejected."""
        known = {
            "apply_orientation", "max_width", "max_height", "max_pixels",
            "max_megapixels", "scale_epsilon", "use_area_average_scaler",
            "enable_yielding", "target",
        }
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {unknown}")

        kw: Dict[str, Any] = {}
        for k in ("apply_orientation", "use_area_average_scaler", "enable_yielding"):
            if k in data:
                kw[k] = bool(data[k])
        for k in ("max_width", "max_height", "max_pixels"):
            if data.get(k) is not None:
                kw[k] = int(data[k])
        if data.get("max_megapixels") is not None:
            kw["max_pixels"] = int(float(data["max_megapixels"]) * 1_000_000)
        if "scale_epsilon" in data:
            kw["scale_epsilon"] = float(data["scale_epsilon"])

        t = data.get("target") or {}
        mime = t.get("mime_type", DEFAULT_MIME_TYPE)
        if mime not in MIME_FORMATS:
            raise ValueError(f"unsupported target mime_type: {mime}")
        kw["target"] = TargetFormat(
            mime_type=mime,
            quality=t.get("quality", DEFAULT_QUALITY),
            force=bool(t.get("force", True)),
            disabled=bool(t.get("disabled", False)),
        )
        return cls(**kw)
