"""Two-color images and their connected foreground clusters."""
import logging
from dataclasses import dataclass
from typing import Iterator, List

import numpy as np
from scipy import ndimage

from clustervec.boundary_smoother import trace_mask
from clustervec.types import CompoundPath, PathSimplifyMode, Rect

logger = logging.getLogger(__name__)


@dataclass
class BinaryCluster:
    """A connected foreground component."""
    mask: np.ndarray  # cropped to rect
    rect: Rect

    def size(self) -> int:
        return int(np.count_nonzero(self.mask))

    def to_compound_path(
        self,
        mode: PathSimplifyMode,
        corner_threshold: float,
        length_threshold: float,
        max_iterations: int,
        splice_threshold: float
    ) -> CompoundPath:
        left, top, _, _ = self.rect
        return trace_mask(
            self.mask,
            (left, top),
            mode,
            corner_threshold,
            length_threshold,
            max_iterations,
            splice_threshold,
        )


class BinaryClusters:
    """Foreground components in raster order of their first pixel."""

    def __init__(self, clusters: List[BinaryCluster]):
        self.clusters = clusters

    def get_cluster(self, index: int) -> BinaryCluster:
        return self.clusters[index]

    def __len__(self) -> int:
        return len(self.clusters)

    def __iter__(self) -> Iterator[BinaryCluster]:
        return iter(self.clusters)


class BinaryImage:
    """Boolean foreground mask."""

    def __init__(self, mask: np.ndarray):
        self.mask = np.asarray(mask, dtype=bool)
        self.height, self.width = self.mask.shape

    def to_clusters(self, diagonal: bool = False) -> BinaryClusters:
        """
        Split the foreground into connected components.

        Args:
            diagonal: Treat diagonally touching pixels as connected

        Returns:
            BinaryClusters ordered by their first pixel in raster order
        """
        structure = ndimage.generate_binary_structure(2, 2 if diagonal else 1)
        labeled, count = ndimage.label(self.mask, structure=structure)

        clusters = []
        for label, slices in enumerate(ndimage.find_objects(labeled), start=1):
            if slices is None:
                continue
            rows, cols = slices
            clusters.append(BinaryCluster(
                mask=labeled[slices] == label,
                rect=(cols.start, rows.start, cols.stop, rows.stop),
            ))

        logger.debug(f"Binary image {self.width}x{self.height}: {count} clusters")
        return BinaryClusters(clusters)
