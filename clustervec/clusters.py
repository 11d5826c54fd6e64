"""Hierarchical color clustering.

Pixels are first grouped into connected components of (nearly) equal
color. Components are then merged smallest-first into their most similar
neighbour; a component that differs enough from the one swallowing it is
emitted as an output layer before it disappears. The emitted layers, in
emission order, form ``clusters_output``: descendants first, the root
last, so painting consumes the list in reverse.
"""
import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from clustervec.boundary_extraction import build_adjacency_graph, neighbour_pairs
from clustervec.boundary_smoother import trace_mask
from clustervec.raster_ingest import ColorImage
from clustervec.types import Color, CompoundPath, PathSimplifyMode, Rect

logger = logging.getLogger(__name__)

HIERARCHICAL_MAX = 2 ** 32 - 1


@dataclass(frozen=True)
class RunnerConfig:
    """Parameters of one clustering pass."""
    diagonal: bool = False
    hierarchical: int = HIERARCHICAL_MAX
    batch_size: int = 25600
    good_min_area: int = 16
    good_max_area: int = 256 * 256
    is_same_color_a: int = 4
    is_same_color_b: int = 1
    deepen_diff: int = 64
    hollow_neighbours: int = 1


@dataclass
class Cluster:
    """One emitted region of a clustering pass."""
    index: int
    indices: np.ndarray  # flat pixel indices of the emitted shape
    area: int
    color: Color
    rect: Rect
    parent: Optional[int] = None
    children: List[int] = field(default_factory=list)

    def residue_color(self) -> Color:
        return self.color

    def size(self) -> int:
        return self.area

    def to_mask(self, width: int) -> np.ndarray:
        """Boolean mask of the shape, cropped to ``rect``."""
        left, top, right, bottom = self.rect
        mask = np.zeros((bottom - top, right - left), dtype=bool)
        ys, xs = np.divmod(self.indices, width)
        mask[ys - top, xs - left] = True
        return mask

    def to_compound_path(
        self,
        view: "ClustersView",
        mode: PathSimplifyMode,
        corner_threshold: float,
        length_threshold: float,
        max_iterations: int,
        splice_threshold: float
    ) -> CompoundPath:
        left, top, _, _ = self.rect
        return trace_mask(
            self.to_mask(view.width),
            (left, top),
            mode,
            corner_threshold,
            length_threshold,
            max_iterations,
            splice_threshold,
        )


@dataclass
class ClustersView:
    """Read-only view over the result of one pass."""
    width: int
    height: int
    clusters: List[Cluster]
    clusters_output: List[int]
    source: ColorImage

    def get_cluster(self, index: int) -> Cluster:
        return self.clusters[index]

    def to_color_image(self) -> ColorImage:
        """
        Flatten the layers into one image.

        Each pixel takes the residue color of the topmost layer covering
        it; pixels no layer covers keep their source color.
        """
        pixels = self.source.pixels.reshape(-1, 4).copy()
        for index in reversed(self.clusters_output):
            cluster = self.clusters[index]
            c = cluster.color
            pixels[cluster.indices] = (c.r, c.g, c.b, c.a)
        return ColorImage(pixels.reshape(-1), self.width, self.height)


@dataclass
class Clusters:
    """Result of a clustering pass."""
    width: int
    height: int
    clusters: List[Cluster]
    clusters_output: List[int]
    source: ColorImage

    def view(self) -> ClustersView:
        return ClustersView(
            self.width,
            self.height,
            self.clusters,
            self.clusters_output,
            self.source,
        )

    def __len__(self) -> int:
        return len(self.clusters_output)


class _Node:
    """Live cluster during merging."""

    __slots__ = (
        'id', 'shape_parts', 'area', 'color_sum', 'color_count',
        'depth', 'neighbours', 'alive', 'pending',
    )

    def __init__(self, node_id: int, indices: np.ndarray, color_sum: np.ndarray):
        self.id = node_id
        self.shape_parts = [indices]
        self.area = int(indices.size)
        self.color_sum = color_sum
        self.color_count = int(indices.size)
        self.depth = 0
        self.neighbours = set()
        self.alive = True
        # Emitted clusters waiting for their nearest emitted ancestor
        self.pending: List[int] = []

    def color(self) -> Color:
        mean = np.rint(self.color_sum / self.color_count).astype(int)
        return Color(*mean.tolist())


class Runner:
    """Runs one clustering pass over an image."""

    def __init__(self, config: RunnerConfig, image: ColorImage):
        self.config = config
        self.image = image
        self.width = image.width
        self.height = image.height

    def run(self) -> Clusters:
        labels, count = self._label_components()
        nodes = self._build_nodes(labels, count)
        logger.debug(f"Clustering {self.width}x{self.height}: {count} initial components")

        clusters: List[Cluster] = []
        output: List[int] = []
        self._merge(nodes, clusters, output)

        logger.debug(f"Clustering emitted {len(output)} clusters")
        return Clusters(self.width, self.height, clusters, output, self.image)

    def _keys(self) -> np.ndarray:
        """Per-pixel channel keys, computed in batches of pixels."""
        pixels = self.image.pixels.reshape(-1, 4)
        keys = np.empty(pixels.shape, dtype=np.int16)
        batch = max(1, self.config.batch_size)
        for start in range(0, len(pixels), batch):
            chunk = pixels[start:start + batch].astype(np.int16)
            keys[start:start + batch] = chunk >> self.config.is_same_color_a
        return keys

    def _label_components(self):
        n = self.width * self.height
        keys = self._keys()

        shape = np.empty((self.height, self.width))
        first, second = neighbour_pairs(shape, self.config.diagonal)
        same = np.all(
            np.abs(keys[first] - keys[second]) < self.config.is_same_color_b,
            axis=1
        )

        graph = coo_matrix(
            (np.ones(int(same.sum()), dtype=np.int8), (first[same], second[same])),
            shape=(n, n)
        )
        count, labels = connected_components(graph, directed=False)
        return labels.reshape(self.height, self.width), count

    def _build_nodes(self, labels: np.ndarray, count: int) -> Dict[int, _Node]:
        flat = labels.ravel()
        pixels = self.image.pixels.reshape(-1, 4).astype(np.float64)

        order = np.argsort(flat, kind='stable')
        sizes = np.bincount(flat, minlength=count)
        groups = np.split(order, np.cumsum(sizes)[:-1])

        sums = np.stack(
            [np.bincount(flat, weights=pixels[:, ch], minlength=count) for ch in range(4)],
            axis=1
        )

        nodes = {i: _Node(i, groups[i], sums[i]) for i in range(count)}
        for label, touching in build_adjacency_graph(labels, self.config.diagonal).items():
            nodes[label].neighbours = touching
        return nodes

    def _emit(self, node: _Node, clusters: List[Cluster], output: List[int]) -> None:
        indices = np.sort(np.concatenate(node.shape_parts))
        ys, xs = np.divmod(indices, self.width)
        rect = (int(xs.min()), int(ys.min()), int(xs.max()) + 1, int(ys.max()) + 1)

        index = len(clusters)
        for child in node.pending:
            clusters[child].parent = index
        cluster = Cluster(
            index=index,
            indices=indices,
            area=int(indices.size),
            color=node.color(),
            rect=rect,
            children=list(node.pending),
        )
        clusters.append(cluster)
        output.append(index)
        node.pending = [index]

    def _area_is_good(self, node: _Node) -> bool:
        return self.config.good_min_area <= node.area <= self.config.good_max_area

    def _finish_root(self, node: _Node, nodes, clusters, output) -> None:
        if self._area_is_good(node):
            self._emit(node, clusters, output)
        node.alive = False
        for other in node.neighbours:
            nodes[other].neighbours.discard(node.id)
        node.neighbours = set()

    def _absorb(self, node: _Node, target: _Node, emitted: bool) -> None:
        target.area += node.area
        target.depth = max(target.depth, node.depth + 1)
        target.pending.extend(node.pending)

        if not emitted:
            target.color_sum = target.color_sum + node.color_sum
            target.color_count += node.color_count
            target.shape_parts.extend(node.shape_parts)
        elif self.config.hollow_neighbours > 0:
            # Fill the hole the emitted layer leaves behind
            target.shape_parts.extend(node.shape_parts)

        for other in node.neighbours:
            if other == target.id:
                continue
            target.neighbours.add(other)
        target.neighbours.discard(node.id)
        target.neighbours.discard(target.id)

        node.alive = False
        node.neighbours = set()

    def _merge(self, nodes: Dict[int, _Node], clusters, output) -> None:
        heap = [(node.area, node.id) for node in nodes.values()]
        heapq.heapify(heap)

        while heap:
            area, node_id = heapq.heappop(heap)
            node = nodes[node_id]
            if not node.alive or node.area != area:
                continue

            if not node.neighbours or node.depth >= self.config.hierarchical:
                self._finish_root(node, nodes, clusters, output)
                continue

            node_color = node.color()
            target = min(
                (nodes[n] for n in node.neighbours),
                key=lambda t: (node_color.diff(t.color()), -t.area, t.id)
            )

            emitted = False
            if self._area_is_good(node) and node_color.diff(target.color()) > self.config.deepen_diff:
                self._emit(node, clusters, output)
                emitted = True

            for other in node.neighbours:
                neighbour = nodes[other]
                neighbour.neighbours.discard(node.id)
                if neighbour is not target:
                    neighbour.neighbours.add(target.id)

            self._absorb(node, target, emitted)
            heapq.heappush(heap, (target.area, target.id))
