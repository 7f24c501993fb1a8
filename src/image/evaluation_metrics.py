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


import math
import numpy as np
import os
from typing import Union

from color import InvalidArgumentError
from .image import Image


class EvaluationMetrics:
    """A collection of image quality and size metrics."""

    def __init__(self, original_image: Image, compressed_image: Image) -> None:
        """
        Initializes the evaluation metrics calculator.

        Args:
            original_image (Image): The original, uncompressed image object.
            compressed_image (Image): The compressed and reconstructed image object.
        """
        if original_image.data.shape != compressed_image.data.shape:
            raise InvalidArgumentError(
                f"Image shapes differ: {original_image.data.shape} vs {compressed_image.data.shape}"
            )
        self.original_image = original_image
        self.compressed_image = compressed_image

    def mse(self) -> float:
        """
        Calculates the Mean Squared Error over every channel of every pixel.

        Returns:
            float: The MSE, channels normalized to [0, 1].
        """
        original = EvaluationMetrics._normalized(self.original_image)
        compressed = EvaluationMetrics._normalized(self.compressed_image)
        return float(np.mean((original - compressed) ** 2))

    def mse_percent(self) -> float:
        """MSE expressed as a percentage."""
        return self.mse() * 100.0

    def psnr(self) -> float:
        """
        Calculates the Peak Signal-to-Noise Ratio (PSNR).

        Returns:
            float: The PSNR in dB, infinite for identical images.
        """
        mse = self.mse()
        if mse == 0.0:
            return math.inf
        return 10.0 * math.log10(1.0 / mse)

    @staticmethod
    def weight_ratio(original_path: Union[str, os.PathLike], compressed_path: Union[str, os.PathLike]) -> float:
        """
        Size of the compressed file relative to the original one.

        Args:
            original_path: Path of the original file.
            compressed_path: Path of the compressed file.

        Returns:
            float: compressed size / original size, as a percentage.
        """
        original_size = os.path.getsize(original_path)
        if original_size == 0:
            raise InvalidArgumentError(f"Empty file: {original_path}")
        return os.path.getsize(compressed_path) / original_size * 100.0

    @staticmethod
    def _normalized(image: Union[Image, np.ndarray]) -> np.ndarray:
        """Converts an Image object or a NumPy array to float64 values in [0, 1]."""
        if isinstance(image, Image):
            data = image.data
        elif isinstance(image, np.ndarray):
            data = image
        else:
            raise TypeError(f"Expected Image or numpy.ndarray, got {type(image)}")
        return data.astype(np.float64) / 255.0
