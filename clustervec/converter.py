"""Conversion pipelines: raster image in, SVG out."""
import logging
from typing import Optional, Union

import numpy as np
from PIL import Image

from clustervec.clusters import Runner
from clustervec.config import (
    Config,
    ConverterConfig,
    cutout_pass_config,
    first_pass_config,
)
from clustervec.raster_ingest import ColorImage, load_image
from clustervec.svg_export import SvgFile, write_svg
from clustervec.types import Color, ColorMode, ConversionError, Hierarchical

logger = logging.getLogger(__name__)

ImageInput = Union[ColorImage, np.ndarray, Image.Image]


def convert(config: Config) -> None:
    """
    Convert ``config.input_path`` into an SVG at ``config.output_path``.

    Raises:
        InputNotFoundError: If the input cannot be decoded
        OutputWriteError: If the output cannot be written
    """
    converter_config = config.into_converter_config()
    if converter_config.input_path is None or converter_config.output_path is None:
        raise ConversionError("Both input_path and output_path are required")

    _run(converter_config, None, save_svg=True)


def convert_in_memory(config: Config, image: ImageInput) -> str:
    """
    Convert an already decoded image and return the SVG text.

    Never touches the filesystem; ``config.input_path`` and
    ``config.output_path`` are ignored.

    Args:
        config: Conversion settings
        image: ColorImage, (H, W[, C]) uint8 array, or Pillow image

    Returns:
        Serialized SVG document
    """
    return _run(config.into_converter_config(), _as_color_image(image), save_svg=False)


def convert_raw(config: Config, pixels: bytes, width: int, height: int) -> str:
    """Convert a raw RGBA byte buffer and return the SVG text."""
    try:
        image = ColorImage(np.frombuffer(pixels, dtype=np.uint8), width, height)
    except ValueError as e:
        raise ConversionError(str(e)) from e
    return convert_in_memory(config, image)


def _as_color_image(image: ImageInput) -> ColorImage:
    if isinstance(image, ColorImage):
        return image
    try:
        if isinstance(image, Image.Image):
            return ColorImage.from_pil(image)
        return ColorImage.from_array(image)
    except ValueError as e:
        raise ConversionError(f"Unsupported image input: {e}") from e


def _run(config: ConverterConfig, image: Optional[ColorImage], save_svg: bool) -> str:
    if image is None:
        image = load_image(config.input_path)

    if config.color_mode == ColorMode.COLOR:
        svg = color_image_to_svg(config, image)
    else:
        svg = binary_image_to_svg(config, image)

    if save_svg:
        write_svg(svg, config.output_path)
    return str(svg)


def color_image_to_svg(config: ConverterConfig, image: ColorImage) -> SvgFile:
    """
    Layered color conversion.

    The first pass clusters the source image. In cutout mode the layers
    are flattened back into an image and clustered a second time, which
    yields disjoint shapes. Layers are painted in reverse output order.
    """
    width, height = image.width, image.height

    clusters = Runner(first_pass_config(config, width, height), image).run()
    logger.info(f"First pass: {len(clusters)} clusters")

    if config.hierarchical == Hierarchical.CUTOUT:
        flattened = clusters.view().to_color_image()
        clusters = Runner(cutout_pass_config(width, height), flattened).run()
        logger.info(f"Cutout pass: {len(clusters)} clusters")

    view = clusters.view()

    svg = SvgFile(width, height, config.path_precision)
    for cluster_index in reversed(view.clusters_output):
        cluster = view.get_cluster(cluster_index)
        paths = cluster.to_compound_path(
            view,
            config.mode,
            config.corner_threshold,
            config.length_threshold,
            config.max_iterations,
            config.splice_threshold,
        )
        svg.add_path(paths, cluster.residue_color())

    logger.info(f"Color conversion: {len(svg)} paths on {width}x{height} canvas")
    return svg


def is_foreground(pixels: np.ndarray) -> np.ndarray:
    """Dark pixels by red channel alone."""
    return pixels[..., 0] < 128


def binary_image_to_svg(config: ConverterConfig, image: ColorImage) -> SvgFile:
    """
    Black-and-white conversion.

    Clusters below the speckle area are dropped before tracing; the rest
    are painted black in their native order.
    """
    width, height = image.width, image.height

    clusters = image.to_binary_image(is_foreground).to_clusters(diagonal=False)

    svg = SvgFile(width, height, config.path_precision)
    for cluster in clusters:
        if cluster.size() < config.filter_speckle_area:
            continue
        paths = cluster.to_compound_path(
            config.mode,
            config.corner_threshold,
            config.length_threshold,
            config.max_iterations,
            config.splice_threshold,
        )
        svg.add_path(paths, Color.black())

    logger.info(
        f"Binary conversion: {len(svg)} of {len(clusters)} clusters kept "
        f"on {width}x{height} canvas"
    )
    return svg
