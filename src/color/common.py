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


import numba as nb
import numpy as np
import re
from typing import Iterable, Tuple, Union


__all__ = [
    'Color',
    'ColorLike',
    'InvalidArgumentError',
    'MalformedInputError',
    'WHITE',
    'average_color',
    'color_to_hex',
    'hex_to_color',
    'luminance',
    'luminance_map',
    'to_color',
]


Color = Tuple[int, int, int]
ColorLike = Union[Color, str]

# Background color of the padding outside the image
WHITE: Color = (255, 255, 255)

_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]{6}$')


class InvalidArgumentError(ValueError):
    """Raised when an argument falls outside its documented domain."""


class MalformedInputError(ValueError):
    """Raised when serialized text or a hex code cannot be parsed."""


@nb.njit(fastmath=True, cache=True)
def _luminance(r: int, g: int, b: int) -> float:
    """
    Perceptual luma of an 8-bit RGB triple.

    Args:
        r (int): Red channel in [0, 255].
        g (int): Green channel in [0, 255].
        b (int): Blue channel in [0, 255].

    Returns:
        float: Luminance in [0, 1].
    """
    return 0.2126 * (r / 255.0) + 0.7152 * (g / 255.0) + 0.0722 * (b / 255.0)

@nb.njit(fastmath=True, parallel=True, cache=True)
def _luminance_map(pixels: np.ndarray) -> np.ndarray:
    """
    Luminance of every pixel of an image.

    Args:
        pixels (np.ndarray): uint8 array of shape (H, W, 3).

    Returns:
        np.ndarray: float64 array of shape (H, W).
    """
    H, W, _ = pixels.shape
    result = np.empty((H, W), dtype=np.float64)

    for i in nb.prange(H):
        for j in range(W):
            result[i, j] = _luminance(pixels[i, j, 0], pixels[i, j, 1], pixels[i, j, 2])

    return result


def luminance(color: Color) -> float:
    """Returns the luminance of `color`, in [0, 1]."""
    r, g, b = color
    return float(_luminance(int(r), int(g), int(b)))

def luminance_map(pixels: np.ndarray) -> np.ndarray:
    """Returns the (H, W) luminance map of an (H, W, 3) uint8 pixel array."""
    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) array, got {pixels.shape}")
    return _luminance_map(np.ascontiguousarray(pixels, dtype=np.uint8))

def average_color(colors: Iterable[Color]) -> Color:
    """
    Unweighted per-channel mean of a group of colors, rounded down.

    Args:
        colors (Iterable[Color]): The colors to average.

    Returns:
        Color: The mean color.
    """
    colors = list(colors)
    count = len(colors)
    r = sum(c[0] for c in colors)
    g = sum(c[1] for c in colors)
    b = sum(c[2] for c in colors)
    return (r // count, g // count, b // count)

def color_to_hex(color: Color) -> str:
    """
    Converts an RGB triple to its six lowercase hex digit code.

    Args:
        color (Color): The (r, g, b) triple.

    Returns:
        str: The hex code, e.g. 'ffffff'.
    """
    if len(color) != 3 or any(not 0 <= int(c) <= 255 for c in color):
        raise InvalidArgumentError(f"Invalid RGB color: {color}")
    return '{:02x}{:02x}{:02x}'.format(*(int(c) for c in color))

def hex_to_color(code: str) -> Color:
    """
    Converts a six hex digit code to an RGB triple.

    Args:
        code (str): The hex code (case-insensitive).

    Returns:
        Color: The (r, g, b) triple.
    """
    if not isinstance(code, str) or not _HEX_PATTERN.match(code.strip()):
        raise MalformedInputError(f"Invalid hex color code: {code!r}")
    code = code.strip()
    return (int(code[0:2], 16), int(code[2:4], 16), int(code[4:6], 16))

def to_color(value: ColorLike) -> Color:
    """Normalizes a hex code or an RGB sequence to an (r, g, b) tuple of ints."""
    if isinstance(value, str):
        return hex_to_color(value)
    color = tuple(int(c) for c in value)
    if len(color) != 3 or any(not 0 <= c <= 255 for c in color):
        raise InvalidArgumentError(f"Invalid RGB color: {value}")
    return color
