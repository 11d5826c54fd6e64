"""Pytest configuration and fixtures."""
from xml.etree import ElementTree as ET

import numpy as np
import pytest

from clustervec.raster_ingest import ColorImage

SVG_NS = "{http://www.w3.org/2000/svg}"


def parse_svg(svg: str) -> ET.Element:
    """Parse SVG text into its root element."""
    return ET.fromstring(svg)


def path_fills(svg: str) -> list:
    """Fill colors of all paths, in document order."""
    return [p.get("fill") for p in parse_svg(svg).iter(f"{SVG_NS}path")]


def solid(height: int, width: int, rgb) -> np.ndarray:
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, :] = rgb
    return img


@pytest.fixture
def black_2x2():
    """2x2 opaque black image."""
    return ColorImage.from_array(solid(2, 2, (0, 0, 0)))


@pytest.fixture
def two_band_image():
    """4x4 image: red top band, blue bottom band."""
    img = solid(4, 4, (0, 0, 255))
    img[:2, :] = (255, 0, 0)
    return ColorImage.from_array(img)


@pytest.fixture
def nested_squares_image():
    """12x12 white, red 8x8 square inside, blue 4x4 square inside that."""
    img = solid(12, 12, (255, 255, 255))
    img[2:10, 2:10] = (255, 0, 0)
    img[4:8, 4:8] = (0, 0, 255)
    return ColorImage.from_array(img)


@pytest.fixture
def speckled_image():
    """20x20 white with black blobs of 1, 4 and 9 pixels."""
    img = solid(20, 20, (255, 255, 255))
    img[1, 1] = (0, 0, 0)
    img[5:7, 5:7] = (0, 0, 0)
    img[12:15, 12:15] = (0, 0, 0)
    return ColorImage.from_array(img)
