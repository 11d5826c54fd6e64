"""Outline fitting: pixel, polygon and spline compound paths."""
import logging
from typing import List, Tuple

import numpy as np
from skimage.measure import approximate_polygon

from clustervec.boundary_extraction import trace_loops
from clustervec.types import (
    BezierCurve,
    CompoundPath,
    PathSimplifyMode,
    Point,
    SubPath,
)

logger = logging.getLogger(__name__)

POLYGON_TOLERANCE = 1.0


def simplify_polygon(loop: np.ndarray, tolerance: float = POLYGON_TOLERANCE) -> np.ndarray:
    """
    Replace pixel staircases with straight segments.

    Args:
        loop: (N, 2) closed outline without a repeated end point
        tolerance: Maximum distance from the original staircase

    Returns:
        Simplified (M, 2) outline; the input if simplification would
        collapse it below a triangle
    """
    if len(loop) <= 4:
        return loop.astype(np.float64)

    closed = np.vstack([loop, loop[:1]]).astype(np.float64)
    simplified = approximate_polygon(closed, tolerance=tolerance)[:-1]

    if len(simplified) < 3:
        return loop.astype(np.float64)
    return simplified


def turn_angles(points: np.ndarray) -> np.ndarray:
    """Absolute turning angle (radians) at each vertex of a closed outline."""
    incoming = points - np.roll(points, 1, axis=0)
    outgoing = np.roll(points, -1, axis=0) - points

    norms = np.linalg.norm(incoming, axis=1) * np.linalg.norm(outgoing, axis=1)
    dots = np.sum(incoming * outgoing, axis=1)
    with np.errstate(invalid='ignore', divide='ignore'):
        cosines = np.where(norms > 0, dots / norms, 1.0)
    return np.arccos(np.clip(cosines, -1.0, 1.0))


def find_corners(points: np.ndarray, corner_threshold: float) -> np.ndarray:
    """Boolean mask of vertices turning by at least ``corner_threshold``."""
    return turn_angles(points) >= corner_threshold


def chaikin_smooth(points: np.ndarray, corners: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    One round of corner-preserving Chaikin corner cutting.

    Corner vertices are kept as they are; every other vertex is replaced
    by two points a quarter of the way towards its neighbours.
    """
    prev_pts = np.roll(points, 1, axis=0)
    next_pts = np.roll(points, -1, axis=0)

    pairs = np.stack([0.75 * points + 0.25 * prev_pts, 0.75 * points + 0.25 * next_pts], axis=1)
    pairs[corners, 0] = points[corners]

    keep = np.ones((len(points), 2), dtype=bool)
    keep[corners, 1] = False
    new_corners = np.zeros((len(points), 2), dtype=bool)
    new_corners[corners, 0] = True

    return pairs[keep], new_corners[keep]


def smooth_outline(
    points: np.ndarray,
    corners: np.ndarray,
    length_threshold: float,
    max_iterations: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Smooth an outline until no segment is longer than ``length_threshold``.

    At least one round runs so small shapes lose their jaggies too;
    at most ``max_iterations`` rounds run.
    """
    for iteration in range(max(1, max_iterations)):
        if corners.all():
            break
        segments = np.linalg.norm(np.roll(points, -1, axis=0) - points, axis=1)
        if iteration > 0 and segments.max() <= length_threshold:
            break
        points, corners = chaikin_smooth(points, corners)
    return points, corners


def find_breaks(
    points: np.ndarray,
    corners: np.ndarray,
    splice_threshold: float,
    max_breaks: int
) -> np.ndarray:
    """
    Vertices where one bezier segment ends and the next begins.

    Every corner breaks. Between corners a splice point breaks the outline
    each time the turn accumulated since the last break reaches
    ``splice_threshold``. At least three breaks are returned; splice points
    are thinned out evenly so there are no more than ``max_breaks``.
    """
    n = len(points)
    breaks = corners.copy()
    if not breaks.any():
        breaks[0] = True

    turns = turn_angles(points)
    turns[breaks] = 0.0

    # Work from the first break so every run starts inside the array
    shift = int(np.argmax(breaks))
    turns = np.roll(turns, -shift)
    rolled = np.roll(breaks, -shift)

    total = np.cumsum(turns)
    last_break = np.maximum.accumulate(np.where(rolled, np.arange(n), 0))
    steps = np.floor((total - total[last_break]) / max(splice_threshold, 1e-9))
    rolled |= steps > np.roll(steps, 1)

    if rolled.sum() < 3:
        rolled[np.linspace(0, n, 3, endpoint=False).astype(int)] = True

    breaks = np.roll(rolled, shift)

    extra = np.flatnonzero(breaks & ~corners)
    room = max_breaks - int(corners.sum())
    if len(extra) > room:
        breaks = corners.copy()
        if room > 0:
            breaks[extra[np.linspace(0, len(extra), room, endpoint=False).astype(int)]] = True
    return breaks


def _unit(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    return np.divide(vectors, norms, out=np.zeros_like(vectors), where=norms > 0)


def _bernstein(u: np.ndarray) -> np.ndarray:
    """(K, 4) cubic Bernstein basis at parameters ``u``."""
    v = 1.0 - u
    return np.stack([v ** 3, 3 * u * v ** 2, 3 * u ** 2 * v, u ** 3], axis=1)


def fit_cubic(run: np.ndarray, start_tangent: np.ndarray, end_tangent: np.ndarray) -> BezierCurve:
    """
    Least-squares cubic through ``run`` with fixed end points and tangents.

    Only the distances of the two control points along the unit end
    tangents are fitted, against a chord-length parameterization of the
    run. Degenerate fits fall back to a third of the chord.
    """
    p0, p3 = run[0], run[-1]
    steps = np.linalg.norm(np.diff(run, axis=0), axis=1)
    arc = float(steps.sum())
    fallback = np.linalg.norm(p3 - p0) / 3.0
    alpha1 = alpha2 = fallback

    if len(run) > 2 and arc > 0:
        u = np.concatenate([[0.0], np.cumsum(steps)]) / arc
        basis = _bernstein(u)
        base = np.outer(basis[:, 0] + basis[:, 1], p0) + np.outer(basis[:, 2] + basis[:, 3], p3)
        design = np.stack([
            (basis[:, 1:2] * start_tangent).ravel(),
            (basis[:, 2:3] * end_tangent).ravel(),
        ], axis=1)
        solution = np.linalg.lstsq(design, (run - base).ravel(), rcond=None)[0]
        eps = 1e-6 * arc
        if eps < solution[0] < arc and eps < solution[1] < arc:
            alpha1, alpha2 = solution

    p1 = p0 + alpha1 * start_tangent
    p2 = p3 + alpha2 * end_tangent
    return BezierCurve(
        Point(*p0.tolist()),
        Point(*p1.tolist()),
        Point(*p2.tolist()),
        Point(*p3.tolist()),
    )


def fit_bezier(
    points: np.ndarray,
    breaks: np.ndarray,
    corners: np.ndarray
) -> List[BezierCurve]:
    """
    Fit one cubic bezier per run between consecutive break vertices.

    At corners the end tangents point along the adjacent segment, so the
    outline keeps a sharp turn there. At splice points they follow the
    central difference, so neighbouring curves join smoothly.
    """
    prev_pts = np.roll(points, 1, axis=0)
    next_pts = np.roll(points, -1, axis=0)
    central = _unit(next_pts - prev_pts)
    start_tangents = np.where(corners[:, None], _unit(next_pts - points), central)
    end_tangents = np.where(corners[:, None], _unit(prev_pts - points), -central)

    n = len(points)
    starts = np.flatnonzero(breaks)
    curves = []
    for start, end in zip(starts, np.roll(starts, -1)):
        if end > start:
            run = points[start:end + 1]
        else:
            run = np.concatenate([points[start:], points[:end + 1]])
        curves.append(fit_cubic(run, start_tangents[start], end_tangents[end % n]))
    return curves


def fit_outline(
    loop: np.ndarray,
    mode: PathSimplifyMode,
    corner_threshold: float,
    length_threshold: float,
    max_iterations: int,
    splice_threshold: float
) -> SubPath:
    """
    Fit one closed pixel outline according to ``mode``.

    Thresholds are in radians.
    """
    if mode == PathSimplifyMode.NONE:
        return SubPath(points=[Point(float(x), float(y)) for x, y in loop.tolist()])

    polygon = simplify_polygon(loop)
    if mode == PathSimplifyMode.POLYGON:
        return SubPath(points=[Point(x, y) for x, y in polygon.tolist()])

    corners = find_corners(polygon, corner_threshold)
    smoothed, corners = smooth_outline(polygon, corners, length_threshold, max_iterations)
    breaks = find_breaks(smoothed, corners, splice_threshold, len(loop))
    return SubPath(curves=fit_bezier(smoothed, breaks, corners))


def trace_mask(
    mask: np.ndarray,
    origin: Tuple[int, int],
    mode: PathSimplifyMode,
    corner_threshold: float,
    length_threshold: float,
    max_iterations: int,
    splice_threshold: float
) -> CompoundPath:
    """
    Trace a region mask into a compound path.

    Args:
        mask: (H, W) boolean mask cropped to the region's bounding rect
        origin: (left, top) of the crop in image coordinates
        mode: Curve fitting mode
        corner_threshold: Minimum turn (radians) kept as a sharp corner
        length_threshold: Target maximum segment length while smoothing
        max_iterations: Cap on smoothing rounds
        splice_threshold: Turn (radians) above which a spline is split

    Returns:
        CompoundPath with one sub-path per outer boundary or hole
    """
    offset = np.array(origin, dtype=np.int64)
    path = CompoundPath()

    for loop in trace_loops(mask):
        path.add(fit_outline(
            loop + offset,
            mode,
            corner_threshold,
            length_threshold,
            max_iterations,
            splice_threshold,
        ))

    if not path.paths:
        logger.warning(f"Empty outline for mask of shape {mask.shape}")
    return path
