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


import contextlib
import io
import numpy as np
import os
import tempfile
import unittest

from app import main, run
from color import hex_to_color
from image import Image
from quadtree import SpatialTree


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        rng = np.random.default_rng(0)
        self.img = Image.from_array(rng.choice(np.array([0, 128, 255], dtype=np.uint8), size=(10, 12, 3)))
        self.image_path = os.path.join(self.tmp.name, "sample.png")
        self.img.save(self.image_path)

    def tearDown(self):
        self.tmp.cleanup()

    def _quiet(self, func, *args):
        stdout, stderr = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            result = func(*args)
        return result, stdout.getvalue(), stderr.getvalue()

    def test_phi_run_writes_outputs(self):
        out_dir = os.path.join(self.tmp.name, "out")
        result, stdout, _ = self._quiet(run, self.image_path, "phi", "30", out_dir)

        self.assertEqual(os.path.basename(result['image']), "sample-phi30.png")
        self.assertEqual(os.path.basename(result['tree']), "sample-phi30R.txt")
        self.assertEqual(os.path.basename(result['index']), "sample-phi30AVL.txt")
        self.assertLessEqual(result['final_leaves'], 30)
        self.assertIn("Weight ratio", stdout)
        self.assertIn("MSE index", stdout)

        # The quadtree text reproduces the saved image
        with open(result['tree']) as f:
            tree = SpatialTree.from_text(f.read(), self.img.width, self.img.height)
        self.assertEqual(tree.to_image(), Image.load(result['image']))

        # The color index text is ascending and holds the tree's distinct colors
        with open(result['index']) as f:
            codes = [token.strip("()") for token in f.read().split()]
        colors = [hex_to_color(code) for code in codes]
        self.assertEqual(colors, sorted(set(tree.leaf_colors())))
        self.assertEqual(result['colors'], len(colors))

    def test_lambda_zero_is_lossless(self):
        result, _, _ = self._quiet(run, self.image_path, "lambda", "0", self.tmp.name)
        self.assertEqual(result['mse_percent'], 0.0)
        self.assertEqual(Image.load(result['image']), self.img)

    def test_main_exit_codes(self):
        code, _, _ = self._quiet(main, [self.image_path, "Lambda", "10", "-o", self.tmp.name])
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(os.path.join(self.tmp.name, "sample-lambda10.png")))

        code, _, stderr = self._quiet(main, [self.image_path, "lambda", "300"])
        self.assertEqual(code, 2)
        self.assertIn("Error", stderr)

        code, _, stderr = self._quiet(main, [self.image_path, "phi", "abc"])
        self.assertEqual(code, 2)

        code, _, _ = self._quiet(main, [os.path.join(self.tmp.name, "missing.png"), "phi", "5"])
        self.assertEqual(code, 2)


if __name__ == '__main__':
    unittest.main()
