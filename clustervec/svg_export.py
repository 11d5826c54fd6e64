"""SVG document assembly and output."""
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from clustervec import __version__
from clustervec.types import BezierCurve, Color, CompoundPath, OutputWriteError, SubPath

logger = logging.getLogger(__name__)


def format_number(x: float, precision: Optional[int]) -> str:
    """
    Format number with given precision.

    Args:
        x: Number to format
        precision: Decimal places, None for Python's shortest repr

    Returns:
        Formatted string
    """
    if precision is None:
        formatted = repr(float(x))
    else:
        formatted = f"{x:.{precision}f}"
    # Remove trailing zeros and decimal point if not needed
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    if formatted in ('-0', ''):
        formatted = '0'
    return formatted


def polyline_to_path_data(sub_path: SubPath, precision: Optional[int]) -> str:
    """Closed ``M ... L ... Z`` outline."""
    fmt = lambda v: format_number(v, precision)
    first, *rest = sub_path.points
    cmds = [f"M{fmt(first.x)},{fmt(first.y)}"]
    cmds.extend(f"L{fmt(p.x)},{fmt(p.y)}" for p in rest)
    cmds.append("Z")
    return ' '.join(cmds)


def bezier_to_path_command(curve: BezierCurve, precision: Optional[int]) -> str:
    fmt = lambda v: format_number(v, precision)
    return (
        f"C{fmt(curve.p1.x)},{fmt(curve.p1.y)} "
        f"{fmt(curve.p2.x)},{fmt(curve.p2.y)} "
        f"{fmt(curve.p3.x)},{fmt(curve.p3.y)}"
    )


def spline_to_path_data(sub_path: SubPath, precision: Optional[int]) -> str:
    """Closed ``M ... C ... Z`` outline."""
    fmt = lambda v: format_number(v, precision)
    start = sub_path.curves[0].p0
    cmds = [f"M{fmt(start.x)},{fmt(start.y)}"]
    cmds.extend(bezier_to_path_command(c, precision) for c in sub_path.curves)
    cmds.append("Z")
    return ' '.join(cmds)


def compound_path_to_data(path: CompoundPath, precision: Optional[int]) -> str:
    parts = []
    for sub_path in path.paths:
        if sub_path.is_spline:
            parts.append(spline_to_path_data(sub_path, precision))
        elif sub_path.points:
            parts.append(polyline_to_path_data(sub_path, precision))
    return ' '.join(parts)


class SvgFile:
    """Canvas-sized SVG document built from (path, color) pairs in paint order."""

    def __init__(self, width: int, height: int, path_precision: Optional[int] = 2):
        self.width = width
        self.height = height
        self.path_precision = path_precision
        self.paths: List[Tuple[CompoundPath, Color]] = []

    def add_path(self, path: CompoundPath, color: Color) -> None:
        self.paths.append((path, color))

    def __len__(self) -> int:
        return len(self.paths)

    def __str__(self) -> str:
        lines = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            f'<!-- Generator: clustervec {__version__} -->',
            f'<svg version="1.1" xmlns="http://www.w3.org/2000/svg" '
            f'width="{self.width}" height="{self.height}">',
        ]
        for path, color in self.paths:
            data = compound_path_to_data(path, self.path_precision)
            lines.append(f'<path d="{data}" fill="{color.to_hex_string()}"/>')
        lines.append('</svg>')
        return '\n'.join(lines) + '\n'


def write_svg(svg: Union[SvgFile, str], output_path: Union[str, Path]) -> None:
    """
    Save SVG to file.

    Args:
        svg: SvgFile or serialized SVG content
        output_path: Output file path

    Raises:
        OutputWriteError: If the file cannot be created or written
    """
    try:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(str(svg))
    except OSError as e:
        raise OutputWriteError(f"Cannot create output file: {output_path}") from e

    logger.info(f"Saved SVG to: {output_path}")
