#!/usr/bin/env python3
"""
Tilesheet Updater

Reads the source PNGs of one tilesheet family, reconciles them with the tile
registry, and rebuilds and uploads the tilesheet images.

With --api-url (or TILESHEETS_API_URL) the registry is a wiki running the
Tilesheets extension, otherwise an offline registry directory is used.

Usage:
  python update_tilesheets.py Minecraft [--source-dir tilesheets] [--work-dir work]
  python update_tilesheets.py Minecraft --api-url https://wiki.example.org/api.php
  python update_tilesheets.py Minecraft --preview
"""

import argparse
import os
import sys
from pathlib import Path

from confirmation import ConfirmationGate
from local_registry import LocalRegistry
from png_optimizer import PngOptimizer
from registry_client import RegistryError, registry_from_env
from tile_allocator import LAYER_CAPACITY
from tile_sources import load_renames
from tilesheet_manager import CHUNK_SIZE, TilesheetManager

RENAMES_FILE = 'renames.txt'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Reconcile a tilesheet family with its registry and rebuild the sheets'
    )
    parser.add_argument('family', help='Tilesheet family (wiki "mod") name')
    parser.add_argument(
        '--source-dir',
        default=os.environ.get('TILESHEETS_SOURCE_DIR', 'tilesheets'),
        help='Root of the per-family source PNG directories (default: tilesheets)'
    )
    parser.add_argument(
        '--work-dir',
        default=os.environ.get('TILESHEETS_WORK_DIR', 'work'),
        help='Directory for lists, renames and composed sheets (default: work)'
    )
    parser.add_argument(
        '--api-url',
        default=os.environ.get('TILESHEETS_API_URL', ''),
        help='MediaWiki api.php URL; leave unset to use the offline registry'
    )
    parser.add_argument(
        '--registry-dir',
        default=os.environ.get('TILESHEETS_REGISTRY_DIR', 'registry'),
        help='Offline registry directory (default: registry)'
    )
    parser.add_argument(
        '--username',
        default=os.environ.get('TILESHEETS_USERNAME', ''),
        help='Wiki bot username (password from TILESHEETS_PASSWORD)'
    )
    parser.add_argument(
        '--optimizer',
        default=os.environ.get('TILESHEETS_OPTIMIZER', ''),
        help='External PNG optimizer command, e.g. "optipng -o7" (default: Pillow)'
    )
    parser.add_argument(
        '--layer-capacity',
        type=int,
        default=LAYER_CAPACITY,
        help=f'Rings per layer before new tiles go to the next layer (default: {LAYER_CAPACITY})'
    )
    parser.add_argument(
        '--chunk-size',
        type=int,
        default=CHUNK_SIZE,
        help=f'Tiles per registry add/delete call (default: {CHUNK_SIZE})'
    )
    parser.add_argument(
        '--preview',
        action='store_true',
        help='Only write additions.txt and missing.txt; change nothing'
    )
    return parser


def open_registry(args):
    if args.api_url:
        return registry_from_env(args.api_url, args.username)
    return LocalRegistry(Path(args.registry_dir))


def create_manager(args) -> TilesheetManager:
    """Wire up a TilesheetManager from parsed command line arguments."""
    source_dir = Path(args.source_dir) / args.family
    work_dir = Path(args.work_dir) / args.family

    if not source_dir.exists():
        print(f"❌ Error: Source directory does not exist: {source_dir}", file=sys.stderr)
        sys.exit(1)
    work_dir.mkdir(parents=True, exist_ok=True)

    return TilesheetManager(
        args.family,
        open_registry(args),
        source_dir,
        work_dir,
        load_renames(work_dir / RENAMES_FILE),
        ConfirmationGate(work_dir),
        optimizer=PngOptimizer(args.optimizer or None),
        layer_capacity=args.layer_capacity,
        chunk_size=args.chunk_size,
    )


def main() -> int:
    args = build_parser().parse_args()

    print("╔════════════════════════════════════════════════════════════╗")
    print("║  Tilesheet Updater                                         ║")
    print("╚════════════════════════════════════════════════════════════╝")
    print()
    print(f"Family:       {args.family}")
    print(f"Source dir:   {Path(args.source_dir).absolute() / args.family}")
    print(f"Work dir:     {Path(args.work_dir).absolute() / args.family}")
    print(f"Registry:     {args.api_url or Path(args.registry_dir).absolute()}")
    print()

    try:
        manager = create_manager(args)
        if args.preview:
            manager.import_registry(create_missing=False)
            manager.preview()
            return 0
        return manager.run()
    except (RuntimeError, RegistryError, ValueError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
