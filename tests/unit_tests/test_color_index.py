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
import unittest

from color import ColorIndex, MalformedInputError, color_to_hex
from image import Image
from quadtree import SpatialTree


def _blue(value):
    return (0, 0, value)


class TestColorIndexBasics(unittest.TestCase):
    def setUp(self):
        self.index = ColorIndex()
        for code in ["ff0000", "00ff00", "0000ff"]:
            self.index.insert(code)

    def test_search(self):
        self.assertEqual(self.index.search("00ff00"), (0, 255, 0))
        self.assertEqual(self.index.search((255, 0, 0)), (255, 0, 0))
        self.assertIsNone(self.index.search("123456"))
        self.assertIn("0000ff", self.index)
        self.assertNotIn("000000", self.index)

    def test_min_and_max(self):
        self.assertEqual(self.index.get_min(), "0000ff")
        self.assertEqual(self.index.get_max(), "ff0000")

    def test_duplicate_insert_keeps_size(self):
        self.assertEqual(len(self.index), 3)
        self.index.insert("00ff00")
        self.index.insert((0, 255, 0))
        self.assertEqual(len(self.index), 3)
        self.assertEqual(self.index.size(), 3)

    def test_serializations(self):
        # Inserting in descending order triggers a single right rotation
        self.assertEqual(self.index.serialize(), "(0000ff) (00ff00) (ff0000)")
        self.assertEqual(self.index.to_prefix_str(), "(00ff00) (0000ff) (ff0000)")
        self.assertEqual(self.index.to_suffix_str(), "(0000ff) (ff0000) (00ff00)")
        self.assertEqual(self.index.to_list(), ["0000ff", "00ff00", "ff0000"])
        self.assertEqual(str(self.index), self.index.serialize())

    def test_shape_queries(self):
        self.assertEqual(self.index.height(), 2)
        self.assertEqual(self.index.count_leaves(), 2)
        self.assertTrue(self.index.is_balanced())

    def test_invalid_hex_raises(self):
        with self.assertRaises(MalformedInputError):
            self.index.search("zzzzzz")

    def test_clear(self):
        self.index.clear()
        self.assertTrue(self.index.is_empty())
        self.assertIsNone(self.index.get_min())
        self.assertIsNone(self.index.get_max())
        self.assertEqual(self.index.serialize(), "")
        self.assertEqual(self.index.height(), 0)


class TestColorIndexBalancing(unittest.TestCase):
    def _root(self, index):
        return index.root.color

    def test_left_right_case(self):
        index = ColorIndex()
        for v in [30, 10, 20]:
            index.insert(_blue(v))
        self.assertEqual(self._root(index), _blue(20))
        self.assertTrue(index.is_balanced())

    def test_right_left_case(self):
        index = ColorIndex()
        for v in [10, 30, 20]:
            index.insert(_blue(v))
        self.assertEqual(self._root(index), _blue(20))
        self.assertTrue(index.is_balanced())

    def test_sorted_inserts_build_perfect_tree(self):
        index = ColorIndex()
        for v in range(1, 8):
            index.insert(_blue(v))
        self.assertEqual(index.height(), 3)
        self.assertEqual(self._root(index), _blue(4))
        self.assertEqual(index.count_leaves(), 4)

    def test_remove_node_with_two_children_uses_successor(self):
        index = ColorIndex()
        for v in range(1, 8):
            index.insert(_blue(v))
        self.assertTrue(index.remove(_blue(4)))
        self.assertEqual(self._root(index), _blue(5))
        self.assertEqual(len(index), 6)
        self.assertEqual(list(index), [_blue(v) for v in [1, 2, 3, 5, 6, 7]])
        self.assertTrue(index.is_balanced())

    def test_remove_absent_color(self):
        index = ColorIndex()
        index.insert("ffffff")
        self.assertFalse(index.remove("000000"))
        self.assertEqual(len(index), 1)

    def test_remove_rebalances(self):
        index = ColorIndex()
        for v in [20, 10, 30, 40]:
            index.insert(_blue(v))
        index.remove(_blue(10))
        self.assertTrue(index.is_balanced())
        self.assertEqual(self._root(index), _blue(30))

    def test_random_operations_keep_invariants(self):
        rng = np.random.default_rng(42)
        colors = [tuple(int(c) for c in row) for row in rng.integers(0, 8, size=(600, 3))]
        index = ColorIndex()
        for color in colors:
            index.insert(color)

        expected = sorted(set(colors))
        self.assertEqual(list(index), expected)
        self.assertEqual(len(index), len(expected))
        self.assertTrue(index.is_balanced())
        self.assertLessEqual(index.height(), 1.45 * math.log2(len(expected) + 2))

        removed = expected[::2]
        for color in removed:
            self.assertTrue(index.remove(color))
            self.assertTrue(index.is_balanced())

        remaining = expected[1::2]
        self.assertEqual(list(index), remaining)
        self.assertEqual(len(index), len(remaining))
        for color in removed:
            self.assertIsNone(index.search(color))

        # Strictly ascending, no duplicate keys
        ordered = list(index)
        self.assertTrue(all(a < b for a, b in zip(ordered, ordered[1:])))


class TestColorIndexQueries(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.index = ColorIndex()
        for v in [10, 20, 30, 40, 50]:
            cls.index.insert(_blue(v))

    def test_successor(self):
        self.assertEqual(self.index.get_successor(_blue(20)), color_to_hex(_blue(30)))
        self.assertEqual(self.index.get_successor(_blue(25)), color_to_hex(_blue(30)))
        self.assertEqual(self.index.get_successor(_blue(0)), color_to_hex(_blue(10)))
        self.assertIsNone(self.index.get_successor(_blue(50)))

    def test_predecessor(self):
        self.assertEqual(self.index.get_predecessor(_blue(20)), color_to_hex(_blue(10)))
        self.assertEqual(self.index.get_predecessor(_blue(45)), color_to_hex(_blue(40)))
        self.assertEqual(self.index.get_predecessor("ffffff"), color_to_hex(_blue(50)))
        self.assertIsNone(self.index.get_predecessor(_blue(10)))

    def test_count_in_range(self):
        self.assertEqual(self.index.count_in_range(_blue(20), _blue(40)), 3)
        self.assertEqual(self.index.count_in_range(_blue(15), _blue(35)), 2)
        self.assertEqual(self.index.count_in_range("000000", "ffffff"), 5)
        self.assertEqual(self.index.count_in_range(_blue(41), _blue(49)), 0)

    def test_closest_color(self):
        self.assertEqual(self.index.closest_color(_blue(22)), color_to_hex(_blue(20)))
        self.assertEqual(self.index.closest_color((0, 0, 255)), color_to_hex(_blue(50)))
        self.assertIsNone(ColorIndex().closest_color("ffffff"))


class TestColorIndexBuilders(unittest.TestCase):
    def test_from_image(self):
        data = np.array([
            [[255, 0, 0], [0, 255, 0], [255, 0, 0]],
            [[0, 0, 255], [255, 0, 0], [0, 255, 0]],
        ], dtype=np.uint8)
        index = ColorIndex.from_image(Image.from_array(data))
        self.assertEqual(index.to_list(), ["0000ff", "00ff00", "ff0000"])
        self.assertTrue(index.is_balanced())

    def test_from_quadtree_includes_padding(self):
        data = np.zeros((3, 3, 3), dtype=np.uint8)
        tree = SpatialTree.from_image(Image.from_array(data))
        index = ColorIndex.from_quadtree(tree)
        self.assertEqual(index.to_list(), ["000000", "ffffff"])

    def test_from_quadtree_matches_leaf_colors(self):
        rng = np.random.default_rng(7)
        data = rng.integers(0, 4, size=(8, 8, 3), dtype=np.uint8) * 60
        tree = SpatialTree.from_image(Image.from_array(data))
        tree.compress_phi(20)
        index = ColorIndex.from_quadtree(tree)
        self.assertEqual(list(index), sorted(set(tree.leaf_colors())))


if __name__ == '__main__':
    unittest.main()
