#!/usr/bin/env python3
"""
Tilesheet raster composition.

A Sheet holds the atlas images of one family at one output size, one image
per layer. Tiles are resampled to the cell size in linear light and pasted at
their cell. Layer images grow on demand and never lose existing pixels.
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from srgb import encode_srgb, resize
from tile_allocator import TilePos


def sheet_filename(family: str, size: int, z: int) -> str:
    """Name of a tilesheet image, locally and in the registry."""
    return f"Tilesheet {family} {size} {z}.png"


def round_up(value: int, multiple: int) -> int:
    return -(-value // multiple) * multiple


class Sheet:
    def __init__(self, size: int, layers: Optional[List[Image.Image]] = None):
        if size < 1:
            raise ValueError(f'Tile size must be positive, got {size}')
        self.size = size
        self.layers: List[Image.Image] = layers if layers is not None else []

    @classmethod
    def from_images(cls, size: int, images: Sequence[Image.Image]) -> 'Sheet':
        """Build a sheet from existing layer images.

        Images whose sides are not a multiple of the tile size are padded with
        transparent pixels up to the next multiple.
        """
        layers = []
        for z, img in enumerate(images):
            img = img.convert('RGBA')
            width, height = img.size
            padded = (round_up(max(width, 1), size), round_up(max(height, 1), size))
            if padded != img.size:
                print(f"⚠️  Layer {z} of size {size} is {width}x{height}, padding to {padded[0]}x{padded[1]}")
                img = grow_image(img, padded)
            layers.append(img)
        return cls(size, layers)

    @property
    def layer_count(self) -> int:
        return len(self.layers)

    def dimensions(self, z: int) -> Tuple[int, int]:
        return self.layers[z].size

    def add_layer(self) -> Image.Image:
        """Append an empty layer holding a single cell."""
        layer = Image.new('RGBA', (self.size, self.size), (0, 0, 0, 0))
        self.layers.append(layer)
        return layer

    def insert(self, pos: TilePos, tile: np.ndarray):
        """Resample a square linear-light tile and paste it at pos."""
        height, width = tile.shape[:2]
        if width != height:
            raise ValueError(f'Tile must be square, got {width}x{height}')

        x, y, z = pos
        if z > len(self.layers):
            raise IndexError(f'Layer {z} requested but sheet only has {len(self.layers)} layers')
        if z == len(self.layers):
            self.add_layer()

        block = encode_srgb(resize(tile, self.size))

        left, top = x * self.size, y * self.size
        needed = (left + self.size, top + self.size)
        layer = self.layers[z]
        if needed[0] > layer.width or needed[1] > layer.height:
            layer = grow_image(layer, (max(layer.width, needed[0]), max(layer.height, needed[1])))
            self.layers[z] = layer

        layer.paste(block, (left, top))

    def clear(self, pos: TilePos):
        """Make the cell at pos fully transparent. Cells outside the sheet are left alone."""
        x, y, z = pos
        if z >= len(self.layers):
            return
        left, top = x * self.size, y * self.size
        layer = self.layers[z]
        if left + self.size > layer.width or top + self.size > layer.height:
            return
        layer.paste(Image.new('RGBA', (self.size, self.size), (0, 0, 0, 0)), (left, top))

    def save(self, directory: Path, family: str) -> List[Path]:
        """Write every layer as a PNG and return the paths in layer order."""
        directory.mkdir(parents=True, exist_ok=True)
        paths = []
        for z, layer in enumerate(self.layers):
            path = directory / sheet_filename(family, self.size, z)
            # Don't optimize here - the optimizer runs as a separate pass
            layer.save(path, 'PNG')
            paths.append(path)
        return paths


def grow_image(img: Image.Image, new_size: Tuple[int, int]) -> Image.Image:
    """Return a larger transparent copy of img with the old pixels at the origin."""
    grown = Image.new('RGBA', new_size, (0, 0, 0, 0))
    grown.paste(img, (0, 0))
    return grown
