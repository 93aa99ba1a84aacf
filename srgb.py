#!/usr/bin/env python3
"""
sRGB <-> linear light conversion for tile images.

Tiles are stored as 8-bit sRGB PNGs but must be resampled in linear light,
otherwise downscaled icons come out darker than the source. Alpha is carried
along as a plain linear channel.
"""

import numpy as np
from PIL import Image


def srgb_to_linear(values: np.ndarray) -> np.ndarray:
    """Apply the sRGB decoding curve to values in [0, 1]."""
    return np.where(
        values <= 0.04045,
        values / 12.92,
        ((values + 0.055) / 1.055) ** 2.4,
    )


def linear_to_srgb(values: np.ndarray) -> np.ndarray:
    """Apply the sRGB encoding curve to values in [0, 1]."""
    values = np.clip(values, 0.0, 1.0)
    return np.where(
        values <= 0.0031308,
        values * 12.92,
        1.055 * np.power(values, 1 / 2.4) - 0.055,
    )


def decode_srgb(img: Image.Image) -> np.ndarray:
    """Convert an image to a float32 (h, w, 4) array in linear light.

    Color channels are gamma decoded, alpha is only scaled to [0, 1].
    """
    pixels = np.asarray(img.convert('RGBA'), dtype=np.float64) / 255.0
    out = np.empty(pixels.shape, dtype=np.float32)
    out[..., :3] = srgb_to_linear(pixels[..., :3])
    out[..., 3] = pixels[..., 3]
    return out


def encode_srgb(pixels: np.ndarray) -> Image.Image:
    """Convert a linear (h, w, 4) float array back to an 8-bit RGBA image."""
    pixels = pixels.astype(np.float64)
    out = np.empty(pixels.shape, dtype=np.float64)
    out[..., :3] = linear_to_srgb(pixels[..., :3])
    out[..., 3] = np.clip(pixels[..., 3], 0.0, 1.0)
    return Image.fromarray(np.rint(out * 255.0).astype(np.uint8))


def resize(pixels: np.ndarray, size: int) -> np.ndarray:
    """Resample a linear (h, w, 4) array to size x size.

    Each channel is resampled on its own as a 32-bit float image with the
    Lanczos filter, so no precision is lost before encoding.
    """
    height, width = pixels.shape[:2]
    if (width, height) == (size, size):
        return pixels.astype(np.float32, copy=True)

    channels = []
    for c in range(pixels.shape[2]):
        band = Image.fromarray(np.ascontiguousarray(pixels[..., c], dtype=np.float32))
        band = band.resize((size, size), Image.Resampling.LANCZOS)
        channels.append(np.asarray(band, dtype=np.float32))
    return np.stack(channels, axis=-1)


def fix_translucent(img: Image.Image) -> Image.Image:
    """Give fully transparent pixels the color of their visible neighbours.

    Transparent pixels often carry black (or garbage) color values. Once the
    tile is resampled those colors leak into the edges of the icon, so they are
    replaced by the average color of adjacent pixels that already have a
    color, growing outwards one ring per pass. Alpha is left untouched.
    """
    rgba = np.asarray(img.convert('RGBA'), dtype=np.float64)
    color = rgba[..., :3].copy()
    known = rgba[..., 3] > 0

    if known.all() or not known.any():
        return img.convert('RGBA')

    while not known.all():
        total = np.zeros_like(color)
        count = np.zeros(known.shape, dtype=np.float64)
        # up, down, left, right neighbours
        for dy, dx in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            shifted_known = np.zeros_like(known)
            shifted_color = np.zeros_like(color)
            src_y = slice(max(-dy, 0), known.shape[0] - max(dy, 0))
            dst_y = slice(max(dy, 0), known.shape[0] - max(-dy, 0))
            src_x = slice(max(-dx, 0), known.shape[1] - max(dx, 0))
            dst_x = slice(max(dx, 0), known.shape[1] - max(-dx, 0))
            shifted_known[dst_y, dst_x] = known[src_y, src_x]
            shifted_color[dst_y, dst_x] = color[src_y, src_x]
            total += shifted_color * shifted_known[..., None]
            count += shifted_known

        grow = ~known & (count > 0)
        color[grow] = total[grow] / count[grow][:, None]
        known = known | grow

    out = rgba.copy()
    out[..., :3] = color
    return Image.fromarray(np.rint(out).astype(np.uint8))
