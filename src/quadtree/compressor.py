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


import numbers
from typing import Union

from color import InvalidArgumentError
from image import Image
from .quadtree import SpatialTree


class CompressionSettings:
    """Settings class for R-quadtree compression parameters."""

    # Method settings: accepted parameter type, bounds, and the tree operation
    METHOD_SETTINGS = {
        'lambda': {
            'parameter_type': numbers.Real,
            'min_parameter': 0,
            'max_parameter': 255,
            'operation': SpatialTree.compress_lambda,
        },
        'phi': {
            'parameter_type': numbers.Integral,
            'min_parameter': 1,
            'max_parameter': None,
            'operation': SpatialTree.compress_phi,
        },
    }


    def __init__(self, method: str = 'lambda', parameter: Union[int, float] = 0) -> None:
        """Initialize compression settings.

        Args:
            method (str): Compression method, 'lambda' (quality) or 'phi' (leaf budget).
            parameter (Union[int, float]): Lambda in [0, 255] or Phi > 0.
        """
        method = str(method).lower()
        if method not in self.METHOD_SETTINGS:
            raise InvalidArgumentError(f"Unsupported compression method: {method} (use lambda or phi)")

        method_config = self.METHOD_SETTINGS[method]
        if (
            isinstance(parameter, bool)
            or not isinstance(parameter, method_config['parameter_type'])
            or parameter < method_config['min_parameter']
            or (method_config['max_parameter'] is not None and parameter > method_config['max_parameter'])
        ):
            raise InvalidArgumentError(f"Invalid {method} parameter: {parameter!r}")

        self.method = method
        self.parameter = parameter
        self.operation = method_config['operation']

    def __str__(self) -> str:
        return f"{self.method}{self.parameter}"


class Compressor:
    """Build, compress and reconstruct images through an R-quadtree."""

    def __init__(self, settings: CompressionSettings) -> None:
        """Initialize the compressor.

        Args:
            settings (CompressionSettings): Compression settings.
        """
        self.update_settings(settings)

    def update_settings(self, settings: CompressionSettings) -> None:
        """Update compression settings."""
        self.settings = settings

    def compress(self, img: Image) -> SpatialTree:
        """Builds the quadtree of `img` and applies the configured compression.

        Args:
            img (Image): Input image to compress.

        Returns:
            SpatialTree: The compressed tree.
        """
        tree = SpatialTree.from_image(img)
        self.compress_tree(tree)
        return tree

    def compress_tree(self, tree: SpatialTree) -> None:
        """Applies the configured compression to an already built tree, in place."""
        if not isinstance(tree, SpatialTree):
            raise TypeError("Input must be a SpatialTree object.")
        self.settings.operation(tree, self.settings.parameter)

    def decompress(self, tree: SpatialTree) -> Image:
        """Reconstructs the image of a compressed tree.

        Args:
            tree (SpatialTree): Compressed tree.

        Returns:
            Image: Reconstructed image.
        """
        if not isinstance(tree, SpatialTree):
            raise TypeError("Input must be a SpatialTree object.")
        return tree.to_image()
