"""Raster image ingestion into flat RGBA buffers."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from clustervec.types import Color, InputNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ColorImage:
    """Flat RGBA pixel buffer.

    ``pixels`` is a 1D uint8 array of length ``width * height * 4``,
    row-major, four bytes per pixel.
    """
    pixels: np.ndarray
    width: int
    height: int

    def __post_init__(self):
        self.pixels = np.asarray(self.pixels, dtype=np.uint8).reshape(-1)
        expected = self.width * self.height * 4
        if self.pixels.size != expected:
            raise ValueError(
                f"Pixel buffer has {self.pixels.size} bytes, expected "
                f"{expected} for {self.width}x{self.height} RGBA"
            )

    @classmethod
    def from_array(cls, image: np.ndarray) -> "ColorImage":
        """
        Create a ColorImage from a numpy array.

        Args:
            image: uint8 array of shape (H, W), (H, W, 3) or (H, W, 4)

        Returns:
            ColorImage with an opaque alpha channel where none was given
        """
        image = np.asarray(image)
        if image.dtype != np.uint8:
            raise ValueError(f"Expected a uint8 array, got {image.dtype}")

        if image.ndim == 2:
            # Grayscale - convert to RGB
            image = np.stack([image] * 3, axis=-1)

        if image.ndim != 3:
            raise ValueError(f"Expected 2D or 3D array, got {image.ndim}D")

        if image.shape[2] == 3:
            alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
            image = np.concatenate([image, alpha], axis=-1)
        elif image.shape[2] != 4:
            raise ValueError(f"Expected 3 or 4 channels, got {image.shape[2]}")

        height, width = image.shape[:2]
        return cls(image.reshape(-1), width, height)

    @classmethod
    def from_pil(cls, img: Image.Image) -> "ColorImage":
        if img.mode != 'RGBA':
            img = img.convert('RGBA')
        width, height = img.size
        return cls(np.frombuffer(img.tobytes(), dtype=np.uint8), width, height)

    def as_array(self) -> np.ndarray:
        """(H, W, 4) view of the buffer."""
        return self.pixels.reshape(self.height, self.width, 4)

    def get_pixel(self, x: int, y: int) -> Color:
        i = (y * self.width + x) * 4
        r, g, b, a = (int(v) for v in self.pixels[i:i + 4])
        return Color(r, g, b, a)

    def to_binary_image(self, predicate: Callable[[np.ndarray], np.ndarray]):
        """
        Threshold into a BinaryImage.

        Args:
            predicate: Vectorized test over the (H, W, 4) array returning
                a boolean (H, W) foreground mask

        Returns:
            BinaryImage of the same size
        """
        from clustervec.binary import BinaryImage

        mask = np.asarray(predicate(self.as_array()), dtype=bool)
        return BinaryImage(mask)


def load_image(path: Union[str, Path]) -> ColorImage:
    """
    Decode an image file into an RGBA ColorImage.

    Args:
        path: Path to image file

    Returns:
        ColorImage holding the decoded pixels

    Raises:
        InputNotFoundError: If the file is missing or cannot be decoded
    """
    path = Path(path)

    try:
        with Image.open(path) as img:
            # Apply EXIF orientation transformation to handle rotation
            img = ImageOps.exif_transpose(img)
            image = ColorImage.from_pil(img)
    except (OSError, UnidentifiedImageError, ValueError) as e:
        logger.debug(f"Failed to load image {path}: {e}")
        raise InputNotFoundError(
            f"No image file found at specified input path: {path}"
        ) from e

    logger.info(f"Loaded {path} ({image.width}x{image.height})")
    return image
