"""Tests for hierarchical color clustering."""
import numpy as np

from clustervec.clusters import RunnerConfig, Runner
from clustervec.raster_ingest import ColorImage
from clustervec.types import Color

from conftest import solid


def run(image, **overrides):
    params = dict(
        good_min_area=0,
        good_max_area=image.width * image.height,
        is_same_color_a=0,
        deepen_diff=0,
    )
    params.update(overrides)
    return Runner(RunnerConfig(**params), image).run()


class TestRunner:
    """Test clustering passes."""

    def test_two_bands(self, two_band_image):
        """Two solid bands become two clusters, root last."""
        view = run(two_band_image).view()

        assert len(view.clusters_output) == 2
        colors = [view.get_cluster(i).residue_color() for i in view.clusters_output]
        assert colors == [Color(255, 0, 0), Color(0, 0, 255)]

    def test_stacked_root_fills_children(self, two_band_image):
        """With hollow filling the root covers the whole canvas."""
        view = run(two_band_image, hollow_neighbours=1).view()
        root = view.get_cluster(view.clusters_output[-1])

        assert root.indices.size == 16
        assert root.rect == (0, 0, 4, 4)

    def test_cutout_root_keeps_hole(self, two_band_image):
        """Without hollow filling emitted shapes are disjoint."""
        view = run(two_band_image, hollow_neighbours=0).view()
        shapes = [set(view.get_cluster(i).indices.tolist()) for i in view.clusters_output]

        assert shapes[0].isdisjoint(shapes[1])
        assert sum(len(s) for s in shapes) == 16

    def test_size_matches_traced_shape(self, nested_squares_image):
        """Cluster size counts the pixels of the shape that gets traced."""
        for hollow, expected in ((1, [16, 64, 144]), (0, [16, 48, 80])):
            view = run(nested_squares_image, hollow_neighbours=hollow).view()
            clusters = [view.get_cluster(i) for i in view.clusters_output]

            assert [c.size() for c in clusters] == expected
            assert [c.size() for c in clusters] == [c.indices.size for c in clusters]

    def test_hierarchy_links(self, nested_squares_image):
        """Each emitted layer points at the layer that swallowed it."""
        view = run(nested_squares_image).view()
        blue, red, white = (view.get_cluster(i) for i in view.clusters_output)

        assert blue.residue_color() == Color(0, 0, 255)
        assert red.residue_color() == Color(255, 0, 0)
        assert white.residue_color() == Color(255, 255, 255)
        assert blue.parent == red.index
        assert red.parent == white.index
        assert white.parent is None
        assert white.children == [red.index]

    def test_speckle_not_emitted(self):
        """Clusters below the minimum area are merged away."""
        img = solid(5, 5, (255, 255, 255))
        img[2, 2] = (0, 0, 0)

        clusters = run(ColorImage.from_array(img), good_min_area=2)

        assert len(clusters) == 1
        assert clusters.view().get_cluster(clusters.clusters_output[0]).area == 25

    def test_deepen_diff_merges_close_colors(self):
        """Layers closer than deepen_diff are not emitted."""
        img = solid(4, 4, (100, 100, 100))
        img[:, 2:] = (104, 104, 104)
        image = ColorImage.from_array(img)

        assert len(run(image, deepen_diff=16)) == 1
        assert len(run(image, deepen_diff=0)) == 2

    def test_precision_loss_joins_pixels(self):
        """Dropped low bits make nearby colors one component."""
        img = solid(4, 4, (100, 100, 100))
        img[:, 2:] = (102, 102, 102)

        clusters = run(ColorImage.from_array(img), is_same_color_a=2)

        assert len(clusters) == 1
        assert clusters.view().get_cluster(0).residue_color() == Color(101, 101, 101)

    def test_diagonal_connectivity(self):
        """Diagonal pixels of one color join only with diagonal enabled."""
        img = solid(2, 2, (255, 255, 255))
        img[0, 0] = img[1, 1] = (0, 0, 0)
        image = ColorImage.from_array(img)

        assert len(run(image, diagonal=True)) == 2
        assert len(run(image, diagonal=False)) == 3

    def test_hierarchy_depth_cap(self, nested_squares_image):
        """A zero depth cap keeps every component as its own root."""
        clusters = run(nested_squares_image, hierarchical=0, hollow_neighbours=0)

        assert len(clusters) == 3

    def test_batch_size_does_not_change_result(self, nested_squares_image):
        """Keying in small batches matches one big batch."""
        small = run(nested_squares_image, batch_size=7).view()
        large = run(nested_squares_image, batch_size=25600).view()

        assert small.clusters_output == large.clusters_output
        for i in small.clusters_output:
            assert np.array_equal(small.get_cluster(i).indices, large.get_cluster(i).indices)


class TestClustersView:
    """Test view helpers."""

    def test_to_color_image_round_trip(self, nested_squares_image):
        """Flattening exact-color layers reproduces the source."""
        flattened = run(nested_squares_image).view().to_color_image()

        assert np.array_equal(flattened.pixels, nested_squares_image.pixels)

    def test_to_color_image_uses_residue(self):
        """Merged speckles take their layer's color."""
        img = solid(5, 5, (255, 255, 255))
        img[2, 2] = (0, 0, 0)

        flattened = run(ColorImage.from_array(img), good_min_area=2).view().to_color_image()

        colors = np.unique(flattened.as_array().reshape(-1, 4), axis=0)
        assert len(colors) == 1

    def test_cluster_mask(self, two_band_image):
        """Masks are cropped to the cluster rect."""
        view = run(two_band_image).view()
        red = view.get_cluster(view.clusters_output[0])

        assert red.rect == (0, 0, 4, 2)
        assert red.to_mask(view.width).all()
