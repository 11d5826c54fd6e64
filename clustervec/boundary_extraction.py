"""Pixel-edge boundary extraction and label adjacency."""
from typing import Dict, List, Set, Tuple

import numpy as np
from skimage.measure import find_contours


def _snap(contour: np.ndarray) -> np.ndarray:
    """
    Map a marching-squares contour of the padded 2x mask onto pixel corners.

    Sample ``i`` of the padded 2x grid sits at ``(2i - 1) / 4`` in pixel
    units, so every contour point lies a quarter pixel from a corner on the
    pixel edge it crosses.

    Returns:
        (N, 2) integer corners in (x, y) order without repeated neighbours
    """
    corners = np.rint((2.0 * contour - 1.0) / 4.0).astype(np.int64)[:, ::-1]
    keep = np.any(corners != np.roll(corners, 1, axis=0), axis=1)
    return corners[keep]


def remove_collinear(loop: np.ndarray) -> np.ndarray:
    """Drop vertices where the outline keeps its direction."""
    loop = np.asarray(loop)
    if len(loop) < 3:
        return loop

    incoming = loop - np.roll(loop, 1, axis=0)
    outgoing = np.roll(loop, -1, axis=0) - loop
    return loop[np.any(incoming != outgoing, axis=1)]


def _orient(loop: np.ndarray, mask: np.ndarray) -> np.ndarray:
    """
    Reverse ``loop`` unless the mask lies on the right of its edges, then
    start it at its topmost-leftmost corner.
    """
    (x0, y0), (x1, y1) = loop[0].tolist(), loop[1].tolist()
    if y0 == y1:
        px = min(x0, x1)
        py = y0 if x1 > x0 else y0 - 1
    else:
        px = x0 - 1 if y1 > y0 else x0
        py = min(y0, y1)

    h, w = mask.shape
    if not (0 <= px < w and 0 <= py < h and mask[py, px]):
        loop = loop[::-1]

    start = int(np.lexsort((loop[:, 0], loop[:, 1]))[0])
    return np.roll(loop, -start, axis=0)


def trace_loops(mask: np.ndarray) -> List[np.ndarray]:
    """
    Trace every closed boundary of a binary mask along pixel edges.

    The mask is doubled and padded before ``find_contours`` so the
    marching-squares contours fall a quarter pixel off the pixel corners
    and snap back onto them exactly. Neighbouring regions therefore share
    their boundary vertices.

    Foreground is face-connected: pixels touching only at a corner get
    separate outlines. Background is fully connected, so holes touching
    only at a corner come out as a single loop that passes through the
    shared corner twice.

    Args:
        mask: (H, W) boolean mask

    Returns:
        List of (N, 2) integer arrays of corner vertices in (x, y) order.
        Outer loops run clockwise on screen, holes counter-clockwise.
    """
    mask = np.asarray(mask, dtype=bool)
    if not mask.any():
        return []

    doubled = mask.repeat(2, axis=0).repeat(2, axis=1)
    padded = np.pad(doubled, 1, constant_values=False).astype(np.float64)

    loops = []
    for contour in find_contours(padded, 0.5, fully_connected='low'):
        loop = remove_collinear(_snap(contour))
        if len(loop) < 4:
            continue
        loops.append(_orient(loop, mask))

    return loops


def signed_area(loop: np.ndarray) -> float:
    """Shoelace area; positive for clockwise loops in screen coordinates."""
    x = loop[:, 0].astype(np.float64)
    y = loop[:, 1].astype(np.float64)
    return float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y) / 2.0)


def neighbour_pairs(
    labels: np.ndarray,
    diagonal: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Flat index pairs of horizontally/vertically (and optionally diagonally)
    adjacent pixels.

    Args:
        labels: (H, W) array, only its shape is used
        diagonal: Include the two diagonal directions

    Returns:
        Tuple of (first, second) flat pixel index arrays
    """
    h, w = labels.shape
    index = np.arange(h * w, dtype=np.int64).reshape(h, w)

    firsts = [index[:, :-1].ravel(), index[:-1, :].ravel()]
    seconds = [index[:, 1:].ravel(), index[1:, :].ravel()]
    if diagonal:
        firsts += [index[:-1, :-1].ravel(), index[:-1, 1:].ravel()]
        seconds += [index[1:, 1:].ravel(), index[1:, :-1].ravel()]

    return np.concatenate(firsts), np.concatenate(seconds)


def build_adjacency_graph(
    label_map: np.ndarray,
    diagonal: bool = False
) -> Dict[int, Set[int]]:
    """
    Build adjacency graph showing which labels touch.

    Returns:
        Dictionary mapping each label to the set of labels it touches
    """
    first, second = neighbour_pairs(label_map, diagonal)
    flat = label_map.ravel()
    a, b = flat[first], flat[second]
    differ = a != b

    pairs = np.unique(
        np.stack([np.minimum(a[differ], b[differ]), np.maximum(a[differ], b[differ])], axis=1),
        axis=0
    ) if np.any(differ) else np.empty((0, 2), dtype=flat.dtype)

    adjacency: Dict[int, Set[int]] = {int(label): set() for label in np.unique(flat)}
    for la, lb in pairs.tolist():
        adjacency[la].add(lb)
        adjacency[lb].add(la)
    return adjacency
