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


@nb.njit(cache=True)
def next_power_of_2(n: int) -> int:
    """
    Returns the smallest power of 2 greater than or equal to `n`.
    If n is a power of 2, returns n.

    Args:
        n (int): The input integer.

    Returns:
        int: The smallest power of 2 >= n.
    """
    if n <= 0:
        raise ValueError("n must be positive.")
    size = 1
    while size < n:
        size *= 2
    return size

@nb.njit(fastmath=True, cache=True)
def luminance_variance(l0: float, l1: float, l2: float, l3: float, mean: float) -> float:
    """
    Population variance of four child luminances about their parent's mean.

    Args:
        l0 (float): NO child luminance.
        l1 (float): NE child luminance.
        l2 (float): SE child luminance.
        l3 (float): SO child luminance.
        mean (float): Parent luminance.

    Returns:
        float: The variance.
    """
    return ((l0 - mean) ** 2 + (l1 - mean) ** 2 + (l2 - mean) ** 2 + (l3 - mean) ** 2) / 4.0

@nb.njit(fastmath=True, cache=True)
def max_luminance_deviation(l0: float, l1: float, l2: float, l3: float, mean: float) -> float:
    """Largest absolute difference between a child luminance and the parent's mean."""
    return max(abs(l0 - mean), abs(l1 - mean), abs(l2 - mean), abs(l3 - mean))
