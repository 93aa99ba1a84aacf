#!/usr/bin/env python3
"""
Local tile inventory: source file walk, renames and tile name rules.
"""

import os
import sys
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

# Characters the registry uses as separators in tile references
ILLEGAL_NAME_CHARS = '_[]'


def load_renames(path: Path) -> Dict[str, str]:
    """Load a renames file.

    Each line is "old=new". An empty new name ("old=") means the file is
    ignored. Lines without "=" are skipped.

    Args:
        path: Path to renames.txt (may not exist)

    Returns:
        Dictionary mapping old name -> new name
    """
    renames = {}
    if not path.exists():
        return renames

    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if not line or '=' not in line:
                continue
            old, new = line.split('=', 1)
            renames[old.strip()] = new.strip()
    return renames


def resolve_name(stem: str, renames: Dict[str, str]) -> Optional[str]:
    """Apply the renames map to a file stem. None means skip the file."""
    name = renames.get(stem, stem)
    return name or None


def check_name(name: str, path: Optional[Path] = None):
    """Terminate the process if a tile name contains an illegal character."""
    bad = [c for c in ILLEGAL_NAME_CHARS if c in name]
    if bad:
        where = f" (from {path})" if path is not None else ""
        print(f"❌ Illegal character(s) {' '.join(bad)} in tile name {name!r}{where}", file=sys.stderr)
        print("   Rename the file or add an entry to renames.txt", file=sys.stderr)
        sys.exit(1)


def iter_tile_files(root: Path, extension: str = '.png') -> Iterator[Path]:
    """Yield regular files below root with the given extension.

    Files come out in directory-walk order, which is also the order new
    tiles get positions in.
    """
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            path = Path(dirpath) / filename
            if path.suffix.lower() != extension or not path.is_file():
                continue
            yield path


def iter_tile_sources(root: Path, renames: Dict[str, str]) -> Iterator[Tuple[str, Path]]:
    """Yield (tile name, path) for every source image, after renames."""
    for path in iter_tile_files(root):
        name = resolve_name(path.stem, renames)
        if name is None:
            continue
        check_name(name, path)
        yield name, path


def chunked(items: Sequence, size: int) -> List[Sequence]:
    """Split items into consecutive batches of at most size items."""
    if size < 1:
        raise ValueError(f'Chunk size must be positive, got {size}')
    return [items[i:i + size] for i in range(0, len(items), size)]
