#!/usr/bin/env python3

import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from PIL import Image

from local_registry import LocalRegistry
from png_optimizer import PngOptimizer
from registry_client import RegistryError, RegistryTile


class LocalRegistryTests(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.root = Path(self._td.name) / 'registry'

    def test_state_survives_reload(self) -> None:
        registry = LocalRegistry(self.root)
        registry.create_family('Blocks', [16, 32])
        errors = registry.add_tiles('Blocks', [(0, 0, 0, 'Stone'), (1, 0, 0, 'Dirt')])
        self.assertEqual(errors, [])

        reloaded = LocalRegistry(self.root)
        self.assertEqual(reloaded.list_families(), [{'name': 'Blocks', 'sizes': [16, 32]}])
        self.assertEqual(reloaded.list_tiles('Blocks'), [
            RegistryTile('Stone', 0, 0, 0, 1),
            RegistryTile('Dirt', 1, 0, 0, 2),
        ])
        self.assertEqual(reloaded.list_tiles('Items'), [])

    def test_add_reports_conflicts_per_tile(self) -> None:
        registry = LocalRegistry(self.root)
        registry.create_family('Blocks', [16])
        registry.add_tiles('Blocks', [(0, 0, 0, 'Stone')])
        errors = registry.add_tiles('Blocks', [(0, 0, 0, 'Dirt'), (1, 0, 0, 'Stone'), (2, 0, 0, 'Sand')])

        self.assertEqual(len(errors), 2)
        self.assertEqual([t.name for t in registry.list_tiles('Blocks')], ['Stone', 'Sand'])

    def test_add_to_unknown_family_raises(self) -> None:
        with self.assertRaises(RegistryError) as cm:
            LocalRegistry(self.root).add_tiles('Nope', [(0, 0, 0, 'Stone')])
        self.assertEqual(cm.exception.code, 'nosheet')

    def test_create_existing_family_raises(self) -> None:
        registry = LocalRegistry(self.root)
        registry.create_family('Blocks', [16])
        with self.assertRaises(RegistryError):
            registry.create_family('Blocks', [32])

    def test_delete_reports_unknown_ids(self) -> None:
        registry = LocalRegistry(self.root)
        registry.create_family('Blocks', [16])
        registry.add_tiles('Blocks', [(0, 0, 0, 'Stone'), (1, 0, 0, 'Dirt')])
        errors = registry.delete_tiles([1, 99])

        self.assertEqual(errors, ['99: no such tile'])
        self.assertEqual([t.name for t in registry.list_tiles('Blocks')], ['Dirt'])

    def test_upload_over_existing_asset_warns(self) -> None:
        registry = LocalRegistry(self.root)
        self.assertIsNone(registry.download_asset('A.png'))
        self.assertEqual(registry.upload_asset('A.png', b'one', 'first').status, 'success')

        result = registry.upload_asset('A.png', b'two', 'second')
        self.assertEqual(result.status, 'warning')
        self.assertIn('exists', result.warnings)
        self.assertEqual(registry.download_asset('A.png'), b'one')

        resumed = registry.upload_asset('A.png', None, 'second', filekey=result.filekey, ignore_warnings=True)
        self.assertEqual(resumed.status, 'success')
        self.assertEqual(registry.download_asset('A.png'), b'two')

    def test_unknown_filekey_is_an_error(self) -> None:
        result = LocalRegistry(self.root).upload_asset('A.png', None, 'x', filekey='missing', ignore_warnings=True)
        self.assertEqual(result.status, 'error')


class PngOptimizerTests(unittest.TestCase):
    def test_pillow_optimize_is_lossless(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / 'sheet.png'
            img = Image.new('RGBA', (64, 64), (0, 0, 0, 0))
            img.paste((10, 200, 30, 255), (0, 0, 32, 32))
            img.save(path, 'PNG', compress_level=0)

            with redirect_stdout(io.StringIO()):
                saved = PngOptimizer().optimize(path)

            self.assertGreater(saved, 0)
            with Image.open(path) as out:
                self.assertEqual(list(out.convert('RGBA').getdata()), list(img.getdata()))


if __name__ == '__main__':
    unittest.main()
