"""
rquadtree - Region-quadtree image compression with an AVL color index.
Copyright (C) 2025  The rquadtree authors

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Lesser General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Lesser General Public License for more details.

You should have received a copy of the GNU Lesser General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""


import imageio.v3 as iio
import numpy as np
import os
from typing import Optional, Type

from color import WHITE, Color, InvalidArgumentError, to_color


class Image:
    """A wrapper for 8-bit RGB pixel data that handles loading, saving and pixel access."""
    def __init__(self, data: np.ndarray, extension: Optional[str] = None) -> None:
        """
        Initializes an Image object.

        Args:
            data (np.ndarray): The image pixel data as a uint8 array of shape (H, W, 3).
            extension (Optional[str]): The original file extension (e.g., '.png').
        """
        if not isinstance(data, np.ndarray):
            raise TypeError("Input must be a numpy array.")
        if data.ndim != 3 or data.shape[2] != 3:
            raise ValueError(f"Unsupported image shape: {data.shape}")
        if data.shape[0] <= 0 or data.shape[1] <= 0:
            raise InvalidArgumentError(f"Image dimensions must be positive, got {data.shape[:2]}")

        self.data = data.astype(np.uint8, copy=False)
        self.extension = extension

    @classmethod
    def from_array(cls: Type['Image'], data: np.ndarray, extension: Optional[str] = None) -> 'Image':
        """
        Creates an Image object from a NumPy array.

        Grayscale (H, W) and RGBA (H, W, 4) arrays are converted to RGB.

        Args:
            cls (Type['Image']): The Image class.
            data (np.ndarray): The image pixel data, integer values in [0, 255].
            extension (Optional[str]): The file extension.

        Returns:
            Image: A new Image instance.
        """
        return cls(Image._to_rgb(np.asarray(data)), extension)

    @classmethod
    def blank(cls: Type['Image'], width: int, height: int, color: Color = WHITE) -> 'Image':
        """
        Creates an image filled with a single color.

        Args:
            cls (Type['Image']): The Image class.
            width (int): Image width in pixels.
            height (int): Image height in pixels.
            color (Color): The fill color.

        Returns:
            Image: A new Image instance.
        """
        if width <= 0 or height <= 0:
            raise InvalidArgumentError(f"Image dimensions must be positive, got {width}x{height}")
        data = np.empty((height, width, 3), dtype=np.uint8)
        data[:, :] = to_color(color)
        return cls(data)

    @classmethod
    def load(cls: Type['Image'], path: str) -> 'Image':
        """
        Loads an image from a file path, converting it to 8-bit RGB.

        Args:
            cls (Type['Image']): The Image class.
            path (str): The path to the image file.

        Returns:
            Image: A new Image instance.
        """
        extension = os.path.splitext(str(path))[1]
        img = iio.imread(path)
        return cls(Image._to_rgb(img), extension)

    @staticmethod
    def _to_rgb(img: np.ndarray) -> np.ndarray:
        if img.dtype == np.uint16:
            img = (img // 257).astype(np.uint8)

        if img.ndim == 2:                           # Grayscale
            img = np.stack((img,) * 3, axis=-1)
        elif img.ndim == 3 and img.shape[2] == 3:   # RGB
            pass
        elif img.ndim == 3 and img.shape[2] == 4:   # RGBA
            img = img[:, :, :3]
        else:
            raise ValueError(f"Unsupported image format: {img.shape}")

        return img.astype(np.uint8)

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    def copy(self) -> 'Image':
        """
        Creates a deep copy of the Image object.

        Returns:
            Image: A new Image instance that is a copy of the current one.
        """
        return Image(self.data.copy(), self.extension)

    def save(self, path: str) -> None:
        """
        Saves the image to a file.

        Args:
            path (str): The destination file path.
        """
        iio.imwrite(path, self.data)

    def get_pixel(self, x: int, y: int) -> Color:
        """
        Returns the color of the pixel at column `x`, row `y`.

        Args:
            x (int): Column in [0, width).
            y (int): Row in [0, height).

        Returns:
            Color: The (r, g, b) triple.
        """
        self._check_bounds(x, y)
        r, g, b = self.data[y, x]
        return (int(r), int(g), int(b))

    def set_pixel(self, x: int, y: int, color: Color) -> None:
        """
        Sets the color of the pixel at column `x`, row `y`.

        Args:
            x (int): Column in [0, width).
            y (int): Row in [0, height).
            color (Color): The (r, g, b) triple or its hex code.
        """
        self._check_bounds(x, y)
        self.data[y, x] = to_color(color)

    def fill_region(self, x: int, y: int, size: int, color: Color) -> None:
        """Paints the square [x, x+size) x [y, y+size), clipped to the image."""
        self.data[y:y+size, x:x+size] = color

    def get_flattened(self) -> np.ndarray:
        """
        Returns the image data as a 2D array, flattening the spatial dimensions.

        Returns:
            np.ndarray: A 2D NumPy array of shape (num_pixels, 3).
        """
        return self.data.reshape(-1, 3)

    def _check_bounds(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise InvalidArgumentError(
                f"Pixel ({x}, {y}) is outside a {self.width}x{self.height} image"
            )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image):
            return NotImplemented
        return self.data.shape == other.data.shape and bool(np.array_equal(self.data, other.data))

    def __str__(self) -> str:
        """
        Returns the string representation of the image data array.

        Returns:
            str: The string representation of the NumPy data array.
        """
        return self.data.__str__()
