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


from .common import (
    WHITE,
    Color,
    ColorLike,
    InvalidArgumentError,
    MalformedInputError,
    average_color,
    color_to_hex,
    hex_to_color,
    luminance,
    luminance_map,
    to_color,
)
from .index import ColorIndex, ColorNode
