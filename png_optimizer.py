#!/usr/bin/env python3
"""
Lossless PNG optimization of composed tilesheets before upload.
"""

import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from PIL import Image


def compress_png(png_path: Path) -> None:
    """Compress a PNG file losslessly using PIL optimization."""
    img = Image.open(png_path)
    img.load()
    # optimize=True enables PIL's PNG optimizer
    # compress_level=9 uses maximum zlib compression
    img.save(png_path, 'PNG', optimize=True, compress_level=9)


class PngOptimizer:
    """Runs an external optimizer command on each file, or Pillow's optimizer.

    Args:
        command: Command line such as "optipng -o7"; the file path is appended
    """

    def __init__(self, command: Optional[str] = None):
        self.command: Optional[List[str]] = shlex.split(command) if command else None

    def optimize(self, png_path: Path) -> int:
        """Optimize one file in place, blocking until done. Returns bytes saved."""
        original_size = png_path.stat().st_size
        if self.command:
            subprocess.run(self.command + [str(png_path)], check=True, capture_output=True)
        else:
            compress_png(png_path)
        saved = original_size - png_path.stat().st_size
        print(f"🗜️  {png_path.name}: {original_size} -> {original_size - saved} bytes")
        return saved

    def optimize_all(self, paths: List[Path]) -> int:
        total_saved = sum(self.optimize(path) for path in paths)
        print(f"   Compressed {len(paths)} sheet(s), saved {total_saved / 1024:.1f} KB")
        return total_saved
