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


import heapq
import numbers
import re
from collections import Counter
from typing import Callable, Dict, Iterator, List, Tuple

from color import (
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
from image import Image
from .utils import luminance_variance, max_luminance_deviation, next_power_of_2


# Child order: North-West, North-East, South-East, South-West
NO, NE, SE, SO = 0, 1, 2, 3

_TOKEN_PATTERN = re.compile(r'\(|\)|[^\s()]+')


class QuadNode:
    """Represents a single square region of the R-quadtree."""

    def __init__(self, x: int, y: int, size: int, color: Color = WHITE, luminance: float = 1.0) -> None:
        """
        Initializes a QuadNode.

        Args:
            x (int): Top-left x-coordinate of the node.
            y (int): Top-left y-coordinate of the node.
            size (int): Side length of the node, a power of 2.
            color (Color): Color of a leaf, average color of an internal node.
            luminance (float): Luminance of a leaf, average luminance of an internal node.
        """
        self.x = x
        self.y = y
        self.size = size
        self.color = color
        self.luminance = luminance
        self.children: List['QuadNode'] = []

    def is_leaf(self) -> bool:
        """
        Checks if the node is a leaf node (has no children).

        Returns:
            bool: True if the node is a leaf, False otherwise.
        """
        return len(self.children) == 0

    def has_leaf_children(self) -> bool:
        """True for an internal node whose four children are all leaves."""
        return bool(self.children) and all(child.is_leaf() for child in self.children)

    def is_homogeneous(self) -> bool:
        """True if the four children are leaves sharing the exact same color."""
        return self.has_leaf_children() and all(
            child.color == self.children[NO].color for child in self.children
        )

    def update_average(self) -> None:
        """Recomputes color and luminance as the unweighted mean of the children."""
        self.color = average_color(child.color for child in self.children)
        self.luminance = sum(child.luminance for child in self.children) / 4.0

    def set_color(self, color: Color) -> None:
        """Recolors a leaf, keeping its luminance in sync."""
        self.color = color
        self.luminance = luminance(color)

    def merge(self) -> None:
        """Drops the children; the node keeps its current average as leaf color."""
        self.children = []

    def collapse(self) -> None:
        """Merges a homogeneous node, taking over its children's shared color."""
        first = self.children[NO]
        self.color = first.color
        self.luminance = first.luminance
        self.merge()

    def quadrants(self) -> List[Tuple[int, int]]:
        """Top-left corners of the four child regions, in NO, NE, SE, SO order."""
        half = self.size // 2
        return [
            (self.x, self.y),
            (self.x + half, self.y),
            (self.x + half, self.y + half),
            (self.x, self.y + half),
        ]


class SpatialTree:
    """
    R-quadtree over the smallest power-of-2 square covering an image.

    Regions outside the image are padded with white. Homogeneous regions
    collapse into single leaves while the tree is built.
    """

    def __init__(self, root: QuadNode, width: int, height: int) -> None:
        """
        Initializes a SpatialTree around an existing root node.

        Args:
            root (QuadNode): Root node, covering the padded square.
            width (int): Width of the original image.
            height (int): Height of the original image.
        """
        self.root = root
        self.width = width
        self.height = height

    @classmethod
    def from_image(cls, img: Image) -> 'SpatialTree':
        """
        Builds the quadtree of an image.

        Args:
            img (Image): The source image.

        Returns:
            SpatialTree: The tree, with identical-color quadrants already merged.
        """
        if not isinstance(img, Image):
            raise TypeError("Input must be an Image object.")

        width, height = img.width, img.height
        pixels = img.data.tolist()
        luminances = luminance_map(img.data).tolist()

        def build(x: int, y: int, size: int) -> QuadNode:
            if size == 1:
                if x < width and y < height:
                    return QuadNode(x, y, 1, tuple(pixels[y][x]), luminances[y][x])
                # Out-of-bounds pixel, background
                return QuadNode(x, y, 1, WHITE, 1.0)

            half = size // 2
            node = QuadNode(x, y, size)
            node.children = [
                build(x, y, half),
                build(x + half, y, half),
                build(x + half, y + half, half),
                build(x, y + half, half),
            ]

            if node.is_homogeneous():
                node.collapse()
            else:
                node.update_average()
            return node

        root_size = next_power_of_2(max(width, height))
        return cls(build(0, 0, root_size), width, height)

    @classmethod
    def from_text(cls, text: str, width: int, height: int) -> 'SpatialTree':
        """
        Rebuilds a tree from its serialized form.

        Region coordinates are not part of the text; they are derived from
        the padded square of `width` x `height`.

        Args:
            text (str): Output of `serialize()`, with or without sizes.
            width (int): Width of the original image.
            height (int): Height of the original image.

        Returns:
            SpatialTree: The rebuilt tree.
        """
        if width <= 0 or height <= 0:
            raise InvalidArgumentError(f"Image dimensions must be positive, got {width}x{height}")

        root_size = next_power_of_2(max(width, height))
        root = _TreeParser(text).parse(root_size)
        return cls(root, width, height)

    # Compression

    def compress_lambda(self, lambda_: float) -> None:
        """
        Quality-bounded compression.

        Every node whose four children are leaves is merged when no child
        luminance deviates from the node's average by more than lambda / 255.
        Children are processed before their parent, so one pass suffices.

        Args:
            lambda_ (float): Maximum luminance deviation, in [0, 255].
        """
        if isinstance(lambda_, bool) or not isinstance(lambda_, numbers.Real) or not 0 <= lambda_ <= 255:
            raise InvalidArgumentError(f"Lambda must be in [0, 255], got {lambda_!r}")
        SpatialTree._compress_lambda(self.root, lambda_ / 255.0)

    @staticmethod
    def _compress_lambda(node: QuadNode, threshold: float) -> None:
        if node.is_leaf():
            return

        for child in node.children:
            SpatialTree._compress_lambda(child, threshold)

        if node.has_leaf_children():
            deviation = max_luminance_deviation(*(child.luminance for child in node.children), node.luminance)
            if deviation <= threshold:
                node.merge()

    def compress_color(self, threshold: int) -> None:
        """
        Color-bounded compression.

        Every node whose four children are leaves is merged when, for every
        pair of children, no RGB channel differs by more than `threshold`.
        Children are processed before their parent.

        Args:
            threshold (int): Maximum channel difference, in [0, 255].
        """
        if isinstance(threshold, bool) or not isinstance(threshold, numbers.Real) or not 0 <= threshold <= 255:
            raise InvalidArgumentError(f"Threshold must be in [0, 255], got {threshold!r}")
        SpatialTree._compress_color(self.root, threshold)

    @staticmethod
    def _compress_color(node: QuadNode, threshold: float) -> None:
        if node.is_leaf():
            return

        for child in node.children:
            SpatialTree._compress_color(child, threshold)

        if node.has_leaf_children():
            # Largest pairwise difference of a channel is its spread
            spread = max(
                max(child.color[i] for child in node.children) - min(child.color[i] for child in node.children)
                for i in range(3)
            )
            if spread <= threshold:
                node.merge()

    def compress_phi(self, phi: int) -> None:
        """
        Budget-bounded compression.

        Repeatedly merges the mergeable node (four leaf children) with the
        smallest luminance variance until at most `phi` leaves remain. Ties go
        to the node met first in a NO, NE, SE, SO pre-order walk. Stops early,
        without error, once nothing is left to merge.

        Args:
            phi (int): Target leaf count, > 0.
        """
        if isinstance(phi, bool) or not isinstance(phi, numbers.Integral) or phi <= 0:
            raise InvalidArgumentError(f"Phi must be a positive integer, got {phi!r}")

        leaf_count = self.leaf_count()
        if leaf_count <= phi:
            return

        # Child-index paths compare in pre-order, which is the tie-break order
        internal_nodes: Dict[Tuple[int, ...], QuadNode] = {}
        candidates = []
        stack = [(self.root, ())]
        while stack:
            node, path = stack.pop()
            if node.is_leaf():
                continue
            internal_nodes[path] = node
            if node.has_leaf_children():
                heapq.heappush(candidates, (SpatialTree._variance(node), path))
            for i in reversed(range(4)):
                stack.append((node.children[i], path + (i,)))

        while leaf_count > phi and candidates:
            _, path = heapq.heappop(candidates)
            internal_nodes.pop(path).merge()
            leaf_count -= 3

            # Merging can only make the parent newly mergeable
            parent_path = path[:-1]
            parent = internal_nodes.get(parent_path)
            if path and parent is not None and parent.has_leaf_children():
                heapq.heappush(candidates, (SpatialTree._variance(parent), parent_path))

    @staticmethod
    def _variance(node: QuadNode) -> float:
        return luminance_variance(*(child.luminance for child in node.children), node.luminance)

    # Reconstruction

    def to_image(self) -> Image:
        """
        Paints every leaf region, clipped to the original dimensions.

        Returns:
            Image: A width x height image.
        """
        img = Image.blank(self.width, self.height)
        for leaf in self.leaves():
            if leaf.x < self.width and leaf.y < self.height:
                img.fill_region(leaf.x, leaf.y, leaf.size, leaf.color)
        return img

    def color_at(self, x: int, y: int) -> Color:
        """
        Returns the color the tree assigns to pixel (x, y).

        Args:
            x (int): Column in [0, width).
            y (int): Row in [0, height).

        Returns:
            Color: The color of the leaf covering the pixel.
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise InvalidArgumentError(f"Pixel ({x}, {y}) is outside a {self.width}x{self.height} image")

        node = self.root
        while not node.is_leaf():
            half = node.size // 2
            east = x >= node.x + half
            south = y >= node.y + half
            if south:
                node = node.children[SE if east else SO]
            else:
                node = node.children[NE if east else NO]
        return node.color

    # Serialization

    def serialize(self, with_size: bool = False) -> str:
        """
        Hierarchical text form of the tree.

        A leaf is its hex color code, an internal node is '(' followed by its
        four children in NO, NE, SE, SO order separated by spaces, then ')'.

        Args:
            with_size (bool): Append ':size' to every leaf token.

        Returns:
            str: The serialized tree.
        """
        return SpatialTree._serialize(self.root, with_size)

    @staticmethod
    def _serialize(node: QuadNode, with_size: bool) -> str:
        if node.is_leaf():
            code = color_to_hex(node.color)
            return f'{code}:{node.size}' if with_size else code
        return '(' + ' '.join(SpatialTree._serialize(child, with_size) for child in node.children) + ')'

    def __str__(self) -> str:
        return self.serialize()

    def to_prefix_str(self) -> str:
        """
        Pre-order text form: an internal node opens with '[' before its
        children and closes with ']', a leaf is its hex code.
        """
        tokens = []
        SpatialTree._collect_prefix(self.root, tokens)
        return ' '.join(tokens)

    def to_suffix_str(self) -> str:
        """Post-order text form: the children, then '>' for each internal node."""
        tokens = []
        SpatialTree._collect_suffix(self.root, tokens)
        return ' '.join(tokens)

    @staticmethod
    def _collect_prefix(node: QuadNode, tokens: List[str]) -> None:
        if node.is_leaf():
            tokens.append(color_to_hex(node.color))
            return
        tokens.append('[')
        for child in node.children:
            SpatialTree._collect_prefix(child, tokens)
        tokens.append(']')

    @staticmethod
    def _collect_suffix(node: QuadNode, tokens: List[str]) -> None:
        if node.is_leaf():
            tokens.append(color_to_hex(node.color))
            return
        for child in node.children:
            SpatialTree._collect_suffix(child, tokens)
        tokens.append('>')

    # Traversals

    def nodes(self) -> Iterator[QuadNode]:
        """Yields every node in NO, NE, SE, SO pre-order."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> Iterator[QuadNode]:
        """Yields the leaves in NO, NE, SE, SO pre-order."""
        return (node for node in self.nodes() if node.is_leaf())

    def leaf_colors(self) -> List[Color]:
        """Leaf colors in the order they appear in the serialized text."""
        return [leaf.color for leaf in self.leaves()]

    def leaf_count(self) -> int:
        return sum(1 for _ in self.leaves())

    def node_count(self) -> int:
        return sum(1 for _ in self.nodes())

    def depth(self) -> int:
        """Number of levels of the tree, 1 for a single leaf."""
        def level(node: QuadNode) -> int:
            return 1 + max((level(child) for child in node.children), default=0)
        return level(self.root)

    def count_color(self, color: ColorLike) -> int:
        """Number of leaves carrying exactly `color`."""
        target = to_color(color)
        return sum(1 for leaf in self.leaves() if leaf.color == target)

    def most_frequent_color(self) -> Color:
        """
        The color carried by the most leaves.

        Ties go to the color met first in NO, NE, SE, SO order.

        Returns:
            Color: The most frequent leaf color.
        """
        counts = Counter(self.leaf_colors())
        return counts.most_common(1)[0][0]

    # Transformations

    def to_grayscale(self) -> None:
        """Replaces every leaf color by the gray level of its luminance."""
        def gray(node: QuadNode) -> Color:
            level = max(0, min(255, round(node.luminance * 255)))
            return (level, level, level)
        SpatialTree._recolor(self.root, gray)

    def to_negative(self) -> None:
        """Inverts every leaf color."""
        SpatialTree._recolor(self.root, lambda node: tuple(255 - c for c in node.color))

    @staticmethod
    def _recolor(node: QuadNode, transform: Callable[[QuadNode], Color]) -> None:
        if node.is_leaf():
            node.set_color(transform(node))
            return
        for child in node.children:
            SpatialTree._recolor(child, transform)
        node.update_average()

    def mirror_horizontal(self) -> None:
        """Mirrors the padded square left to right."""
        SpatialTree._mirror(self.root, [(NO, NE), (SO, SE)])
        SpatialTree._relocate(self.root, 0, 0)

    def mirror_vertical(self) -> None:
        """Mirrors the padded square top to bottom."""
        SpatialTree._mirror(self.root, [(NO, SO), (NE, SE)])
        SpatialTree._relocate(self.root, 0, 0)

    @staticmethod
    def _mirror(node: QuadNode, swaps: List[Tuple[int, int]]) -> None:
        if node.is_leaf():
            return
        for a, b in swaps:
            node.children[a], node.children[b] = node.children[b], node.children[a]
        for child in node.children:
            SpatialTree._mirror(child, swaps)

    @staticmethod
    def _relocate(node: QuadNode, x: int, y: int) -> None:
        node.x, node.y = x, y
        for child, (cx, cy) in zip(node.children, node.quadrants()):
            SpatialTree._relocate(child, cx, cy)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpatialTree):
            return NotImplemented
        if (self.width, self.height) != (other.width, other.height):
            return False
        return SpatialTree._same_shape(self.root, other.root)

    @staticmethod
    def _same_shape(a: QuadNode, b: QuadNode) -> bool:
        if a.is_leaf() or b.is_leaf():
            return a.is_leaf() and b.is_leaf() and a.color == b.color
        return all(SpatialTree._same_shape(ca, cb) for ca, cb in zip(a.children, b.children))


class _TreeParser:
    """Recursive-descent parser for the serialized SpatialTree format."""

    def __init__(self, text: str) -> None:
        if not isinstance(text, str):
            raise TypeError(f"Expected str, got {type(text)}")
        self.tokens = _TOKEN_PATTERN.findall(text)
        self.pos = 0

    def parse(self, root_size: int) -> QuadNode:
        if not self.tokens:
            raise MalformedInputError("Empty quadtree text")
        root = self._parse_node(0, 0, root_size)
        if self.pos != len(self.tokens):
            raise MalformedInputError(f"Unexpected token after the root node: {self.tokens[self.pos]!r}")
        return root

    def _next(self) -> str:
        if self.pos >= len(self.tokens):
            raise MalformedInputError("Unexpected end of quadtree text")
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def _parse_node(self, x: int, y: int, size: int) -> QuadNode:
        token = self._next()

        if token == ')':
            raise MalformedInputError("Unexpected ')'")

        if token == '(':
            if size == 1:
                raise MalformedInputError("Nesting is deeper than the image size allows")
            node = QuadNode(x, y, size)
            node.children = [self._parse_node(cx, cy, size // 2) for cx, cy in node.quadrants()]
            if self._next() != ')':
                raise MalformedInputError("Internal node must have exactly four children")
            node.update_average()
            return node

        code, sep, size_suffix = token.partition(":")
        if sep and size_suffix != str(size):
            raise MalformedInputError(f"Leaf {token!r} does not match region size {size}")
        node = QuadNode(x, y, size)
        node.set_color(hex_to_color(code))
        return node
