"""User-facing configuration, presets, and pass parameter resolution."""
import math
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Union

from clustervec.clusters import HIERARCHICAL_MAX, RunnerConfig
from clustervec.types import (
    ColorMode,
    ConfigError,
    Hierarchical,
    PathSimplifyMode,
)

BATCH_SIZE = 25600
CUTOUT_HIERARCHY_DEPTH = 64


@dataclass
class Config:
    """Conversion settings as a user states them."""

    input_path: Optional[Union[str, Path]] = None
    output_path: Optional[Union[str, Path]] = None

    color_mode: ColorMode = ColorMode.COLOR
    hierarchical: Hierarchical = Hierarchical.STACKED

    # Regions smaller than filter_speckle x filter_speckle pixels are dropped
    filter_speckle: int = 4
    # Significant bits per channel
    color_precision: int = 6
    # Color difference between layers (gradient step)
    layer_difference: int = 16

    mode: PathSimplifyMode = PathSimplifyMode.SPLINE
    corner_threshold: int = 60  # degrees
    length_threshold: float = 4.0
    max_iterations: int = 10
    splice_threshold: int = 45  # degrees
    path_precision: Optional[int] = 2

    def __post_init__(self):
        try:
            self.color_mode = ColorMode(self.color_mode)
            self.hierarchical = Hierarchical(self.hierarchical)
            self.mode = PathSimplifyMode(self.mode)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        self.validate()

    def validate(self) -> None:
        """Reject out-of-range settings."""
        _check_range("filter_speckle", self.filter_speckle, 0, 16)
        _check_range("color_precision", self.color_precision, 1, 8)
        _check_range("layer_difference", self.layer_difference, 0, 255)
        _check_range("corner_threshold", self.corner_threshold, 0, 180)
        _check_range("length_threshold", self.length_threshold, 3.5, 10)
        _check_range("splice_threshold", self.splice_threshold, 0, 180)
        if self.max_iterations < 1:
            raise ConfigError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.path_precision is not None and self.path_precision < 0:
            raise ConfigError(f"path_precision must be >= 0, got {self.path_precision}")

    @classmethod
    def from_preset(cls, name: str, **overrides) -> "Config":
        """
        Build a Config from a named preset.

        Args:
            name: One of ``bw``, ``poster``, ``photo``
            **overrides: Fields replacing the preset's values

        Raises:
            ConfigError: Unknown preset name or invalid override
        """
        try:
            preset = PRESETS[name]
        except KeyError:
            raise ConfigError(
                f"Unknown preset {name!r}, expected one of {sorted(PRESETS)}"
            ) from None

        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"Unknown config fields: {sorted(unknown)}")
        return replace(preset, **overrides)

    def into_converter_config(self) -> "ConverterConfig":
        return ConverterConfig(
            input_path=Path(self.input_path) if self.input_path is not None else None,
            output_path=Path(self.output_path) if self.output_path is not None else None,
            color_mode=self.color_mode,
            hierarchical=self.hierarchical,
            filter_speckle_area=self.filter_speckle * self.filter_speckle,
            color_precision_loss=8 - self.color_precision,
            layer_difference=self.layer_difference,
            mode=self.mode,
            corner_threshold=math.radians(self.corner_threshold),
            length_threshold=self.length_threshold,
            max_iterations=self.max_iterations,
            splice_threshold=math.radians(self.splice_threshold),
            path_precision=self.path_precision,
        )


def _check_range(name: str, value, low, high) -> None:
    if not low <= value <= high:
        raise ConfigError(f"{name} must be in [{low}, {high}], got {value}")


PRESETS = {
    "bw": Config(
        color_mode=ColorMode.BINARY,
        hierarchical=Hierarchical.STACKED,
        filter_speckle=4,
        color_precision=6,
        layer_difference=16,
        mode=PathSimplifyMode.SPLINE,
        corner_threshold=60,
        length_threshold=4.0,
        max_iterations=10,
        splice_threshold=45,
        path_precision=2,
    ),
    "poster": Config(
        color_mode=ColorMode.COLOR,
        hierarchical=Hierarchical.STACKED,
        filter_speckle=4,
        color_precision=8,
        layer_difference=16,
        mode=PathSimplifyMode.SPLINE,
        corner_threshold=60,
        length_threshold=4.0,
        max_iterations=10,
        splice_threshold=45,
        path_precision=2,
    ),
    "photo": Config(
        color_mode=ColorMode.COLOR,
        hierarchical=Hierarchical.STACKED,
        filter_speckle=10,
        color_precision=8,
        layer_difference=48,
        mode=PathSimplifyMode.SPLINE,
        corner_threshold=180,
        length_threshold=4.0,
        max_iterations=10,
        splice_threshold=45,
        path_precision=2,
    ),
}


@dataclass(frozen=True)
class ConverterConfig:
    """Resolved settings; thresholds in pixels and radians."""
    input_path: Optional[Path]
    output_path: Optional[Path]
    color_mode: ColorMode
    hierarchical: Hierarchical
    filter_speckle_area: int
    color_precision_loss: int
    layer_difference: int
    mode: PathSimplifyMode
    corner_threshold: float
    length_threshold: float
    max_iterations: int
    splice_threshold: float
    path_precision: Optional[int]


def first_pass_config(config: ConverterConfig, width: int, height: int) -> RunnerConfig:
    """Clustering parameters for the first color pass."""
    return RunnerConfig(
        diagonal=config.layer_difference == 0,
        hierarchical=HIERARCHICAL_MAX,
        batch_size=BATCH_SIZE,
        good_min_area=config.filter_speckle_area,
        good_max_area=width * height,
        is_same_color_a=config.color_precision_loss,
        is_same_color_b=1,
        deepen_diff=config.layer_difference,
        hollow_neighbours=1,
    )


def cutout_pass_config(width: int, height: int) -> RunnerConfig:
    """Clustering parameters for re-segmenting a flattened image."""
    return RunnerConfig(
        diagonal=False,
        hierarchical=CUTOUT_HIERARCHY_DEPTH,
        batch_size=BATCH_SIZE,
        good_min_area=0,
        good_max_area=width * height,
        is_same_color_a=0,
        is_same_color_b=1,
        deepen_diff=0,
        hollow_neighbours=0,
    )
