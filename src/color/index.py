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


import numpy as np
from typing import Iterator, List, Optional

from .common import Color, ColorLike, color_to_hex, to_color


class ColorNode:
    """Represents one distinct color in the ColorIndex."""

    def __init__(self, color: Color) -> None:
        """
        Initializes a ColorNode.

        Args:
            color (Color): The (r, g, b) triple, also the ordering key.
        """
        self.color = color
        self.hex_code = color_to_hex(color)
        self.left: Optional['ColorNode'] = None
        self.right: Optional['ColorNode'] = None
        self.height = 1


def _height(node: Optional[ColorNode]) -> int:
    return 0 if node is None else node.height

def _update_height(node: ColorNode) -> None:
    node.height = 1 + max(_height(node.left), _height(node.right))

def _balance_factor(node: Optional[ColorNode]) -> int:
    return 0 if node is None else _height(node.left) - _height(node.right)


class ColorIndex:
    """
    Height-balanced (AVL) binary search tree over distinct RGB colors.

    Colors are ordered lexicographically on (R, G, B), which is exactly the
    ordering of Python tuples. Every public method accepts a color either as
    an (r, g, b) triple or as a six hex digit code.
    """

    def __init__(self) -> None:
        self.root: Optional[ColorNode] = None
        self._size = 0

    @classmethod
    def from_image(cls, img) -> 'ColorIndex':
        """
        Builds the index of every distinct pixel color of an image.

        Args:
            img (Image): The source image.

        Returns:
            ColorIndex: A new index.
        """
        index = cls()
        for color in np.unique(img.get_flattened(), axis=0):
            index.insert(tuple(int(c) for c in color))
        return index

    @classmethod
    def from_quadtree(cls, tree) -> 'ColorIndex':
        """
        Builds the index of every distinct leaf color of a SpatialTree.

        Args:
            tree (SpatialTree): The source quadtree.

        Returns:
            ColorIndex: A new index.
        """
        index = cls()
        for color in tree.leaf_colors():
            index.insert(color)
        return index

    def __len__(self) -> int:
        return self._size

    def __contains__(self, color: ColorLike) -> bool:
        return self.search(color) is not None

    def __iter__(self) -> Iterator[Color]:
        """Iterates the colors in ascending (R, G, B) order."""
        stack = []
        node = self.root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.color
            node = node.right

    def size(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    def clear(self) -> None:
        self.root = None
        self._size = 0

    # Search

    def search(self, color: ColorLike) -> Optional[Color]:
        """
        Looks a color up.

        Args:
            color (ColorLike): The color or its hex code.

        Returns:
            Optional[Color]: The stored color, or None when absent.
        """
        key = to_color(color)
        node = self.root
        while node is not None:
            if key < node.color:
                node = node.left
            elif key > node.color:
                node = node.right
            else:
                return node.color
        return None

    def get_min(self) -> Optional[str]:
        """Returns the hex code of the smallest color, or None if empty."""
        if self.root is None:
            return None
        node = self.root
        while node.left is not None:
            node = node.left
        return node.hex_code

    def get_max(self) -> Optional[str]:
        """Returns the hex code of the largest color, or None if empty."""
        if self.root is None:
            return None
        node = self.root
        while node.right is not None:
            node = node.right
        return node.hex_code

    def get_successor(self, color: ColorLike) -> Optional[str]:
        """
        Finds the smallest stored color strictly greater than `color`.

        The query color itself does not need to be stored.

        Args:
            color (ColorLike): The query color.

        Returns:
            Optional[str]: The successor's hex code, or None.
        """
        key = to_color(color)
        successor = None
        node = self.root
        while node is not None:
            if key < node.color:
                successor = node
                node = node.left
            else:
                node = node.right
        return None if successor is None else successor.hex_code

    def get_predecessor(self, color: ColorLike) -> Optional[str]:
        """
        Finds the largest stored color strictly smaller than `color`.

        Args:
            color (ColorLike): The query color.

        Returns:
            Optional[str]: The predecessor's hex code, or None.
        """
        key = to_color(color)
        predecessor = None
        node = self.root
        while node is not None:
            if key > node.color:
                predecessor = node
                node = node.right
            else:
                node = node.left
        return None if predecessor is None else predecessor.hex_code

    def count_in_range(self, low: ColorLike, high: ColorLike) -> int:
        """Counts the stored colors c with low <= c <= high."""
        return self._count_in_range(self.root, to_color(low), to_color(high))

    def _count_in_range(self, node: Optional[ColorNode], low: Color, high: Color) -> int:
        if node is None:
            return 0
        count = 1 if low <= node.color <= high else 0
        if node.color > low:
            count += self._count_in_range(node.left, low, high)
        if node.color < high:
            count += self._count_in_range(node.right, low, high)
        return count

    def closest_color(self, color: ColorLike) -> Optional[str]:
        """
        Finds the stored color nearest to `color` by Euclidean RGB distance.

        Every node is visited; on ties the first one met in pre-order wins.

        Args:
            color (ColorLike): The target color.

        Returns:
            Optional[str]: The hex code of the closest color, or None if empty.
        """
        target = to_color(color)
        closest = None
        min_distance = None
        stack = [self.root] if self.root is not None else []

        while stack:
            node = stack.pop()
            distance = sum((a - b) ** 2 for a, b in zip(node.color, target))
            if min_distance is None or distance < min_distance:
                min_distance = distance
                closest = node
            if node.right is not None:
                stack.append(node.right)
            if node.left is not None:
                stack.append(node.left)

        return None if closest is None else closest.hex_code

    # Insertion / removal

    def insert(self, color: ColorLike) -> None:
        """
        Adds a color, or refreshes its payload if already present.

        Args:
            color (ColorLike): The color or its hex code.
        """
        self.root = self._insert(self.root, to_color(color))

    def _insert(self, node: Optional[ColorNode], color: Color) -> ColorNode:
        if node is None:
            self._size += 1
            return ColorNode(color)

        if color < node.color:
            node.left = self._insert(node.left, color)
        elif color > node.color:
            node.right = self._insert(node.right, color)
        else:
            node.color = color
            return node

        _update_height(node)
        return self._rebalance(node)

    def remove(self, color: ColorLike) -> bool:
        """
        Removes a color.

        Args:
            color (ColorLike): The color or its hex code.

        Returns:
            bool: True if the color was present.
        """
        key = to_color(color)
        if self.search(key) is None:
            return False
        self.root = self._remove(self.root, key)
        self._size -= 1
        return True

    def _remove(self, node: Optional[ColorNode], color: Color) -> Optional[ColorNode]:
        if node is None:
            return None

        if color < node.color:
            node.left = self._remove(node.left, color)
        elif color > node.color:
            node.right = self._remove(node.right, color)
        else:
            if node.left is None:
                return node.right
            if node.right is None:
                return node.left

            # Two children: take over the in-order successor
            successor = node.right
            while successor.left is not None:
                successor = successor.left
            node.color = successor.color
            node.hex_code = successor.hex_code
            node.right = self._remove(node.right, successor.color)

        _update_height(node)
        return self._rebalance(node)

    # Balancing

    @staticmethod
    def _rebalance(node: ColorNode) -> ColorNode:
        balance = _balance_factor(node)

        if balance > 1:
            # Left-right
            if _balance_factor(node.left) < 0:
                node.left = ColorIndex._rotate_left(node.left)
            # Left-left
            return ColorIndex._rotate_right(node)

        if balance < -1:
            # Right-left
            if _balance_factor(node.right) > 0:
                node.right = ColorIndex._rotate_right(node.right)
            # Right-right
            return ColorIndex._rotate_left(node)

        return node

    @staticmethod
    def _rotate_right(y: ColorNode) -> ColorNode:
        x = y.left
        y.left = x.right
        x.right = y
        _update_height(y)
        _update_height(x)
        return x

    @staticmethod
    def _rotate_left(x: ColorNode) -> ColorNode:
        y = x.right
        x.right = y.left
        y.left = x
        _update_height(x)
        _update_height(y)
        return y

    # Shape queries

    def height(self) -> int:
        """Height of the tree, 0 when empty."""
        return _height(self.root)

    def count_leaves(self) -> int:
        """Number of nodes without children."""
        count = 0
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            if node.left is None and node.right is None:
                count += 1
            stack.extend(child for child in (node.left, node.right) if child is not None)
        return count

    def is_balanced(self) -> bool:
        """
        Verifies the AVL invariant from scratch, ignoring the cached heights.

        Returns:
            bool: True if every balance factor is in {-1, 0, 1} and every
                cached height matches the recomputed one.
        """
        def check(node: Optional[ColorNode]) -> int:
            # -1 flags a violation below
            if node is None:
                return 0
            left = check(node.left)
            right = check(node.right)
            if left < 0 or right < 0 or abs(left - right) > 1:
                return -1
            height = 1 + max(left, right)
            return height if height == node.height else -1

        return check(self.root) >= 0

    # Serialization

    def to_list(self) -> List[str]:
        """Hex codes in ascending order."""
        return [color_to_hex(color) for color in self]

    def serialize(self) -> str:
        """
        In-order text form: '(hex) (hex) ...' ascending by (R, G, B).

        Returns:
            str: The serialized index, '' when empty.
        """
        return ' '.join(f'({code})' for code in self.to_list())

    def to_prefix_str(self) -> str:
        """Pre-order text form, '(hex)' tokens."""
        codes = []
        self._collect_prefix(self.root, codes)
        return ' '.join(f'({code})' for code in codes)

    def to_suffix_str(self) -> str:
        """Post-order text form, '(hex)' tokens."""
        codes = []
        self._collect_suffix(self.root, codes)
        return ' '.join(f'({code})' for code in codes)

    def _collect_prefix(self, node: Optional[ColorNode], codes: List[str]) -> None:
        if node is None:
            return
        codes.append(node.hex_code)
        self._collect_prefix(node.left, codes)
        self._collect_prefix(node.right, codes)

    def _collect_suffix(self, node: Optional[ColorNode], codes: List[str]) -> None:
        if node is None:
            return
        self._collect_suffix(node.left, codes)
        self._collect_suffix(node.right, codes)
        codes.append(node.hex_code)

    def __str__(self) -> str:
        return self.serialize()
