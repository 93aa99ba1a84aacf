#!/usr/bin/env python3

import unittest

import numpy as np
from PIL import Image

from srgb import decode_srgb, encode_srgb, fix_translucent, linear_to_srgb, resize, srgb_to_linear


class SrgbTests(unittest.TestCase):
    def test_single_pixel_round_trip(self) -> None:
        for color in [(0, 0, 0, 0), (255, 255, 255, 255), (12, 128, 200, 77), (1, 2, 254, 128)]:
            img = Image.new('RGBA', (1, 1), color)
            out = encode_srgb(resize(decode_srgb(img), 1))
            for got, want in zip(out.getpixel((0, 0)), color):
                self.assertLessEqual(abs(got - want), 1, f"{color} -> {out.getpixel((0, 0))}")

    def test_decode_is_linear_light(self) -> None:
        pixels = decode_srgb(Image.new('RGBA', (2, 2), (128, 128, 128, 128)))
        self.assertEqual(pixels.shape, (2, 2, 4))
        self.assertEqual(pixels.dtype, np.float32)
        # sRGB 128 is roughly 21.6% linear intensity
        self.assertAlmostEqual(float(pixels[0, 0, 0]), 0.2158, places=3)
        # alpha is not gamma decoded
        self.assertAlmostEqual(float(pixels[0, 0, 3]), 128 / 255, places=5)

    def test_curves_are_inverse(self) -> None:
        values = np.linspace(0.0, 1.0, 101)
        np.testing.assert_allclose(linear_to_srgb(srgb_to_linear(values)), values, atol=1e-9)

    def test_encode_clamps_out_of_range(self) -> None:
        pixels = np.array([[[1.5, -0.2, 0.5, 2.0]]], dtype=np.float32)
        self.assertEqual(encode_srgb(pixels).getpixel((0, 0))[0], 255)
        self.assertEqual(encode_srgb(pixels).getpixel((0, 0))[1], 0)
        self.assertEqual(encode_srgb(pixels).getpixel((0, 0))[3], 255)

    def test_resize_keeps_flat_color(self) -> None:
        pixels = decode_srgb(Image.new('RGBA', (32, 32), (40, 90, 160, 255)))
        small = resize(pixels, 16)
        self.assertEqual(small.shape, (16, 16, 4))
        self.assertEqual(encode_srgb(small).getpixel((7, 7)), (40, 90, 160, 255))

    def test_downscale_averages_in_linear_light(self) -> None:
        # Black and white stripes average to ~188 in sRGB, not 128
        stripes = np.zeros((2, 2, 4), dtype=np.uint8)
        stripes[..., 3] = 255
        stripes[:, 0, :3] = 255
        img = Image.fromarray(stripes)
        out = encode_srgb(resize(decode_srgb(img), 1)).getpixel((0, 0))
        self.assertGreater(out[0], 170)


class FixTranslucentTests(unittest.TestCase):
    def test_transparent_pixels_take_neighbour_color(self) -> None:
        img = Image.new('RGBA', (3, 1), (0, 0, 0, 0))
        img.putpixel((0, 0), (200, 100, 50, 255))
        fixed = fix_translucent(img)

        self.assertEqual(fixed.getpixel((0, 0)), (200, 100, 50, 255))
        self.assertEqual(fixed.getpixel((1, 0)), (200, 100, 50, 0))
        self.assertEqual(fixed.getpixel((2, 0)), (200, 100, 50, 0))

    def test_neighbours_are_averaged(self) -> None:
        img = Image.new('RGBA', (3, 1), (0, 0, 0, 0))
        img.putpixel((0, 0), (100, 0, 0, 255))
        img.putpixel((2, 0), (200, 0, 0, 10))
        self.assertEqual(fix_translucent(img).getpixel((1, 0)), (150, 0, 0, 0))

    def test_fully_transparent_image_is_unchanged(self) -> None:
        img = Image.new('RGBA', (4, 4), (1, 2, 3, 0))
        self.assertEqual(list(fix_translucent(img).getdata()), list(img.getdata()))


if __name__ == '__main__':
    unittest.main()
