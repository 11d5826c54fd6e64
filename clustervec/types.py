"""Core types for the clustervec conversion pipeline."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class ColorMode(Enum):
    """Which pipeline a conversion runs through."""
    COLOR = "color"
    BINARY = "binary"


class Hierarchical(Enum):
    """Layering strategy for color mode."""
    STACKED = "stacked"
    CUTOUT = "cutout"


class PathSimplifyMode(Enum):
    """Curve fitting mode handed to the path tracer."""
    NONE = "pixel"
    POLYGON = "polygon"
    SPLINE = "spline"


@dataclass(frozen=True)
class Color:
    """8-bit RGBA color."""
    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def black(cls) -> "Color":
        return cls(0, 0, 0)

    def to_hex_string(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    def diff(self, other: "Color") -> int:
        """Sum of absolute RGB channel differences."""
        return (
            abs(self.r - other.r)
            + abs(self.g - other.g)
            + abs(self.b - other.b)
        )


@dataclass
class Point:
    """2D point with float coordinates."""
    x: float
    y: float


@dataclass
class BezierCurve:
    """Cubic bezier curve segment."""
    p0: Point
    p1: Point  # Control point
    p2: Point  # Control point
    p3: Point


@dataclass
class SubPath:
    """One closed outline of a compound path.

    Exactly one of ``points`` (polyline) or ``curves`` (cubic beziers)
    carries the geometry.
    """
    points: List[Point] = field(default_factory=list)
    curves: List[BezierCurve] = field(default_factory=list)

    @property
    def is_spline(self) -> bool:
        return bool(self.curves)


@dataclass
class CompoundPath:
    """Outline of one cluster: outer boundaries and holes as sub-paths."""
    paths: List[SubPath] = field(default_factory=list)

    def add(self, sub_path: SubPath) -> None:
        self.paths.append(sub_path)

    def __len__(self) -> int:
        return len(self.paths)


Rect = Tuple[int, int, int, int]  # left, top, right, bottom (exclusive)


class VectorizationError(Exception):
    """Base exception for vectorization errors."""
    pass


class ConversionError(VectorizationError):
    """A conversion call failed."""
    pass


class InputNotFoundError(ConversionError):
    """Input image missing or not decodable."""
    pass


class OutputWriteError(ConversionError):
    """Output file could not be created or written."""
    pass


class ConfigError(VectorizationError, ValueError):
    """Invalid user configuration."""
    pass
