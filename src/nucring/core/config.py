"""Validated settings for a batch run."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from nucring.core.exceptions import ConfigurationError

SUPPORTED_THRESHOLD_METHODS = frozenset({"phansalkar", "sauvola"})


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings for segmentation, ring derivation, and measurement.

    Areas are in physical units (µm²) and lengths in µm, converted to pixels
    with each image's pixel size. ``block_size``, ``local_radius``,
    ``blur_sigma`` and ``min_distance`` are in pixels.

    Attributes:
        input_dir: Directory scanned (recursively) for channel files.
        output_dir: Directory receiving ``Results.csv`` and region archives.
        block_size: Contrast-enhancement tile size.
        local_radius: Radius of the adaptive-threshold neighbourhood.
        min_area: Smallest accepted nucleus area.
        max_area: Largest accepted nucleus area.
        cytoplasm_thickness: Width of the cytoplasmic ring.
        file_suffix: Only files ending with this suffix are considered.
        nuclear_channel: Channel index (``C<n>``) holding the nuclear stain.
        measure_channels: Auxiliary channel indices to measure.
        exclusive_cytoplasm: Assign contested ring pixels to the nearest
            nucleus instead of letting neighbouring rings overlap.
        reuse_archive: Load region sets from the archive when present
            instead of segmenting again.
        workers: Number of images processed concurrently.
        pixel_size_um: Override for the pixel size read from file metadata.
    """

    input_dir: Path | None = None
    output_dir: Path | None = None
    block_size: int = 127
    local_radius: int = 15
    min_area: float = 30.0
    max_area: float = 500.0
    cytoplasm_thickness: float = 2.0
    file_suffix: str = ".tif"
    nuclear_channel: int = 1
    measure_channels: tuple[int, ...] = (2, 3)
    exclusive_cytoplasm: bool = False
    reuse_archive: bool = False
    workers: int = 1
    pixel_size_um: float | None = None
    blur_sigma: float = 2.0
    clip_limit: float = 0.01
    threshold_method: str = "phansalkar"
    k: float = 0.25
    r: float = 0.5
    p: float = 2.0
    q: float = 10.0
    min_distance: int | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        """Validate settings; any violation is a ConfigurationError."""
        if self.input_dir is not None:
            object.__setattr__(self, "input_dir", Path(self.input_dir))
        if self.output_dir is not None:
            object.__setattr__(self, "output_dir", Path(self.output_dir))
        object.__setattr__(self, "measure_channels", tuple(int(c) for c in self.measure_channels))

        for name in ("block_size", "local_radius", "workers"):
            if int(getattr(self, name)) <= 0:
                raise ConfigurationError(name, f"must be > 0, got {getattr(self, name)}")
        for name in ("min_area", "max_area", "cytoplasm_thickness"):
            if not getattr(self, name) > 0:
                raise ConfigurationError(name, f"must be > 0, got {getattr(self, name)}")
        if self.min_area > self.max_area:
            raise ConfigurationError(
                "min_area", f"must be <= max_area ({self.min_area} > {self.max_area})"
            )
        if self.blur_sigma < 0:
            raise ConfigurationError("blur_sigma", f"must be >= 0, got {self.blur_sigma}")
        if not (0 < self.clip_limit <= 1):
            raise ConfigurationError("clip_limit", f"must be in (0, 1], got {self.clip_limit}")
        if self.r <= 0:
            raise ConfigurationError("r", f"must be > 0, got {self.r}")
        if self.threshold_method not in SUPPORTED_THRESHOLD_METHODS:
            raise ConfigurationError(
                "threshold_method",
                f"{self.threshold_method!r} not in {sorted(SUPPORTED_THRESHOLD_METHODS)}",
            )
        if self.pixel_size_um is not None and self.pixel_size_um <= 0:
            raise ConfigurationError("pixel_size_um", f"must be > 0, got {self.pixel_size_um}")
        if self.min_distance is not None and self.min_distance < 1:
            raise ConfigurationError("min_distance", f"must be >= 1, got {self.min_distance}")
        if not self.file_suffix:
            raise ConfigurationError("file_suffix", "must not be empty")
        if self.nuclear_channel < 1:
            raise ConfigurationError("nuclear_channel", f"must be >= 1, got {self.nuclear_channel}")
        if not self.measure_channels:
            raise ConfigurationError("measure_channels", "at least one channel is required")
        if len(set(self.measure_channels)) != len(self.measure_channels):
            raise ConfigurationError("measure_channels", "channels must be unique")
        if any(ch < 1 for ch in self.measure_channels):
            raise ConfigurationError("measure_channels", "channel indices start at 1")

    def with_overrides(self, **overrides: Any) -> AnalysisConfig:
        """Return a copy with non-None overrides applied (and re-validated)."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(message=f"unknown option(s): {sorted(unknown)}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict (paths as strings, channels as a list)."""
        data: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if isinstance(value, Path):
                value = str(value)
            elif isinstance(value, tuple):
                value = list(value)
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        known = {f.name for f in fields(cls)} - {"extra"}
        unknown = {k: v for k, v in data.items() if k not in known}
        kwargs = {k: v for k, v in data.items() if k in known}
        try:
            return cls(**kwargs, extra=unknown)
        except TypeError as exc:
            raise ConfigurationError(message=str(exc)) from exc

    def to_yaml(self, path: Path) -> None:
        """Serialize this config to a YAML file."""
        from nucring.io.serialization import config_to_yaml

        config_to_yaml(self, path)

    @classmethod
    def from_yaml(cls, path: Path) -> AnalysisConfig:
        """Deserialize an AnalysisConfig from a YAML file."""
        from nucring.io.serialization import config_from_yaml

        return config_from_yaml(path)
