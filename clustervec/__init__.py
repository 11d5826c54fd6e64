"""Raster to SVG conversion by hierarchical color clustering."""
__version__ = "0.1.0"

from clustervec.types import (
    Color,
    ColorMode,
    CompoundPath,
    ConfigError,
    ConversionError,
    Hierarchical,
    InputNotFoundError,
    OutputWriteError,
    PathSimplifyMode,
    VectorizationError,
)
from clustervec.config import Config, ConverterConfig
from clustervec.raster_ingest import ColorImage, load_image
from clustervec.converter import convert, convert_in_memory, convert_raw

__all__ = [
    "Color",
    "ColorImage",
    "ColorMode",
    "CompoundPath",
    "Config",
    "ConfigError",
    "ConversionError",
    "ConverterConfig",
    "Hierarchical",
    "InputNotFoundError",
    "OutputWriteError",
    "PathSimplifyMode",
    "VectorizationError",
    "convert",
    "convert_in_memory",
    "convert_raw",
    "load_image",
]
