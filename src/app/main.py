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


import argparse
import sys
from pathlib import Path
from typing import List, Optional

from color import ColorIndex
from image import EvaluationMetrics, Image
from quadtree import CompressionSettings, Compressor, SpatialTree


def _parse_parameter(method: str, text: str):
    """Phi is a leaf count, Lambda may be fractional."""
    if method.lower() == 'phi':
        return int(text)
    value = float(text)
    return int(value) if value.is_integer() else value


def run(image_path: str, method: str, parameter: str, output_dir: Optional[str] = None) -> dict:
    """
    Build, compress and export an image, then report the results.

    Writes <base>-<method><parameter>.png, the quadtree text (...R.txt) and
    the color index text (...AVL.txt) next to the input, or in `output_dir`.

    Args:
        image_path (str): Input image.
        method (str): 'lambda' or 'phi'.
        parameter (str): Compression parameter as typed by the user.
        output_dir (Optional[str]): Destination directory.

    Returns:
        dict: Output paths and metrics.
    """
    input_path = Path(image_path)
    settings = CompressionSettings(method, _parse_parameter(method, parameter))
    compressor = Compressor(settings)

    img = Image.load(input_path)
    print(f"Loaded image: {img.width}x{img.height} pixels")

    tree = SpatialTree.from_image(img)
    initial_leaves = tree.leaf_count()
    compressor.compress_tree(tree)
    final_leaves = tree.leaf_count()
    print(f"Initial leaves: {initial_leaves}")
    print(f"Compression {settings.method.capitalize()}({settings.parameter}) applied")
    print(f"Leaves after compression: {final_leaves}")

    destination = Path(output_dir) if output_dir else input_path.parent
    destination.mkdir(parents=True, exist_ok=True)
    base = destination / f"{input_path.stem}-{settings.method}{parameter}"
    png_output = base.with_name(base.name + '.png')
    tree_output = base.with_name(base.name + 'R.txt')
    index_output = base.with_name(base.name + 'AVL.txt')

    compressor.decompress(tree).save(png_output)
    print(f"Compressed image: {png_output}")

    tree_output.write_text(tree.serialize())
    print(f"R-quadtree text: {tree_output}")

    index = ColorIndex.from_quadtree(tree)
    index_output.write_text(index.serialize())
    print(f"Color index text: {index_output}")

    # Reload both files so the metrics reflect what was written to disk
    metrics = EvaluationMetrics(Image.load(input_path), Image.load(png_output))
    weight_ratio = EvaluationMetrics.weight_ratio(input_path, png_output)
    mse_percent = metrics.mse_percent()
    reduction = 100.0 * (initial_leaves - final_leaves) / initial_leaves

    print("=== Results ===")
    print(f"Original file: {input_path.stat().st_size} bytes")
    print(f"Compressed file: {png_output.stat().st_size} bytes")
    print(f"Weight ratio: {weight_ratio:.2f}%")
    print(f"MSE index: {mse_percent:.4f}%")
    print(f"Colors in the index: {len(index)}")
    print(f"Leaf reduction: {initial_leaves} -> {final_leaves} ({reduction:.1f}%)")

    return {
        'image': png_output,
        'tree': tree_output,
        'index': index_output,
        'initial_leaves': initial_leaves,
        'final_leaves': final_leaves,
        'colors': len(index),
        'weight_ratio': weight_ratio,
        'mse_percent': mse_percent,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main function for command-line usage"""
    parser = argparse.ArgumentParser(
        prog='rquadtree',
        description='R-quadtree image compression with Lambda (quality) or Phi (leaf budget) control',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s photo.png lambda 20
  %(prog)s photo.png phi 5000 --output-dir out/
        '''
    )
    parser.add_argument('image', help='Input image file (PNG, BMP, etc.)')
    parser.add_argument('method', type=str.lower, choices=['lambda', 'phi'], help='Compression method')
    parser.add_argument('parameter', help='Lambda in [0, 255] or Phi > 0')
    parser.add_argument('-o', '--output-dir', default=None,
                        help='Directory for the output files (default: next to the input)')

    args = parser.parse_args(argv)

    try:
        run(args.image, args.method, args.parameter, args.output_dir)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == '__main__':
    sys.exit(main())
