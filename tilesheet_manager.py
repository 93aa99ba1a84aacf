#!/usr/bin/env python3
"""
Tilesheet reconciliation.

Brings the registry and the tilesheet images of one family in line with a
local directory of source PNGs:

1. Import the family's sheet sizes, tiles and current sheet images
2. Scan the source directory for added and missing tiles
3. Let a human review the lists and pick tiles to delete
4. Apply the deletions
5. Allocate positions for new tiles and paint every tile into every sheet
6. Save, optimize and upload the sheets, then send the tile changes

Nothing in the registry is touched before step 3 has been confirmed.
"""

import io
import sys
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Set

from PIL import Image

from confirmation import ConfirmationGate
from registry_client import RegistryError
from sheet_upload import upload_sheet
from srgb import decode_srgb, fix_translucent
from tile_allocator import LAYER_CAPACITY, TilePos, TileTable
from tile_sources import chunked, iter_tile_sources
from tilesheet import Sheet, sheet_filename

CHUNK_SIZE = 50


def parse_sizes(text: str) -> List[int]:
    """Parse "16, 32" into [16, 32]. Raises ValueError on bad input."""
    sizes = [int(part) for part in text.replace(' ', '').split(',') if part]
    if not sizes or any(size < 1 for size in sizes):
        raise ValueError(f"Invalid size list: {text!r}")
    return sorted(set(sizes))


class TilesheetManager:
    def __init__(self, family: str, registry, source_dir: Path, work_dir: Path,
                 renames: Dict[str, str], gate: ConfirmationGate, optimizer=None,
                 layer_capacity: int = LAYER_CAPACITY, chunk_size: int = CHUNK_SIZE):
        self.family = family
        self.registry = registry
        self.source_dir = source_dir
        self.work_dir = work_dir
        self.renames = renames
        self.gate = gate
        self.optimizer = optimizer
        self.chunk_size = chunk_size

        self.table = TileTable(layer_capacity=layer_capacity)
        self.sheets: List[Sheet] = []
        self.added: List[str] = []
        self.missing: Set[str] = set()
        self.deleted: List[int] = []

    # ─── 1. Registry import ─────────────────────────────────────────────

    def import_registry(self, create_missing: bool = True):
        """Load sizes, tiles and sheet images of the family.

        With create_missing=False an unknown family is imported as empty
        instead of being created, so read-only callers never write to the
        registry.
        """
        sizes = self.family_sizes(create_missing)
        print(f"📐 Sheet sizes: {', '.join(str(s) for s in sizes) or 'none'}")

        for tile in self.registry.list_tiles(self.family):
            self.table.add_existing(tile.name, TilePos(tile.x, tile.y, tile.z), tile.id)
        self.missing = {tile.name for tile in self.table}
        print(f"📥 {len(self.table)} tile(s) in the registry")

        self.sheets = [self.load_sheet(size) for size in sizes]

    def family_sizes(self, create_missing: bool = True) -> List[int]:
        for family in self.registry.list_families():
            if family['name'] == self.family:
                return sorted(int(s) for s in family['sizes'])

        if not create_missing:
            print(f"⚠️  No tilesheet named {self.family} in the registry yet; every local tile is new")
            return []

        print(f"No tilesheet named {self.family} found. Creating new tilesheet.")
        answer = self.gate.ask("Enter comma-separated tile sizes (e.g. 16,32): ")
        try:
            sizes = parse_sizes(answer)
        except ValueError as e:
            print(f"❌ {e}", file=sys.stderr)
            sys.exit(1)
        self.registry.create_family(self.family, sizes)
        return sizes

    def load_sheet(self, size: int) -> Sheet:
        """Download every existing layer of one sheet size."""
        images = []
        while True:
            data = self.registry.download_asset(sheet_filename(self.family, size, len(images)))
            if data is None:
                break
            images.append(Image.open(io.BytesIO(data)))
        if images:
            print(f"🖼️  Loaded {len(images)} layer(s) at size {size}")
        return Sheet.from_images(size, images)

    # ─── 2. Local scan ──────────────────────────────────────────────────

    def scan(self):
        self.added = []
        seen = set()
        for name, _path in iter_tile_sources(self.source_dir, self.renames):
            self.missing.discard(name)
            if name not in self.table and name not in seen:
                self.added.append(name)
            seen.add(name)
        print(f"🔎 {len(self.added)} new tile(s), {len(self.missing)} missing tile(s)")

    # ─── 3. Confirmation ────────────────────────────────────────────────

    def confirm(self) -> List[str]:
        return self.gate.confirm(self.added, self.missing)

    def preview(self):
        """Scan and refresh the inspection lists without changing anything."""
        self.missing = {tile.name for tile in self.table}
        self.scan()
        self.gate.write_lists(self.added, self.missing)

    # ─── 4. Deletions ───────────────────────────────────────────────────

    def apply_deletions(self, names: Sequence[str]):
        for name in names:
            if name not in self.table:
                print(f"⚠️  Cannot delete {name}: no such tile")
                continue
            tile = self.table.remove(name)
            if tile.registry_id is not None:
                self.deleted.append(tile.registry_id)
            for sheet in self.sheets:
                sheet.clear(tile.position)
            print(f"🗑️  Deleting {name} at {tuple(tile.position)}")

    # ─── 5. Allocation and composition ──────────────────────────────────

    def compose(self):
        count = 0
        for name, path in iter_tile_sources(self.source_dir, self.renames):
            with Image.open(path) as img:
                if img.width != img.height:
                    print(f"⚠️  Skipping {path}: {img.width}x{img.height} is not square")
                    continue
                tile = decode_srgb(fix_translucent(img))
            pos = self.table.lookup(name)
            for sheet in self.sheets:
                while sheet.layer_count < pos.z:
                    sheet.add_layer()
                sheet.insert(pos, tile)
            count += 1
        print(f"🎨 Painted {count} tile(s) into {len(self.sheets)} sheet size(s)")

    # ─── 6. Finalize ────────────────────────────────────────────────────

    def finalize(self):
        paths: List[Path] = []
        for sheet in self.sheets:
            paths.extend(sheet.save(self.work_dir, self.family))
        print(f"💾 Saved {len(paths)} sheet image(s) to {self.work_dir}")

        if self.optimizer is not None:
            self.optimizer.optimize_all(paths)

        uploaded = sum(1 for path in paths if upload_sheet(self.registry, self.gate, path))
        print(f"📤 Uploaded {uploaded}/{len(paths)} sheet image(s)")

        additions = [(t.position.x, t.position.y, t.position.z, t.name) for t in self.table.new_tiles()]
        self.submit('Add', additions, lambda chunk: self.registry.add_tiles(self.family, chunk))
        self.submit('Delete', self.deleted, self.registry.delete_tiles)

    def submit(self, label: str, items: Sequence, call: Callable[[Sequence], List[str]]) -> int:
        """Send items to the registry in chunks. Returns the number of failed items."""
        failed = 0
        for index, chunk in enumerate(chunked(items, self.chunk_size), start=1):
            try:
                errors = call(chunk)
            except RegistryError as e:
                print(f"❌ {label} chunk {index} ({len(chunk)} tiles) failed: {e.code}: {e.info}")
                failed += len(chunk)
                continue
            for error in errors:
                print(f"❌ {label}: {error}")
            failed += len(errors)
        if items:
            print(f"✅ {label}: {len(items) - failed}/{len(items)} tile(s) done")
        return failed

    def run(self) -> int:
        print("📥 Importing registry state...")
        self.import_registry()
        print("🔎 Scanning local tiles...")
        self.scan()
        deletions = self.confirm()
        self.apply_deletions(deletions)
        print("🎨 Composing tilesheets...")
        self.compose()
        self.finalize()
        return 0
