#!/usr/bin/env python3
"""
Offline tile registry stored in a directory.

Layout:
    <root>/registry.json   families, tiles and the next tile id
    <root>/assets/         uploaded files (the composed tilesheets)

Behaves like the wiki registry closely enough to run a full update without a
network connection: uploading over an existing asset produces an "exists"
warning unless warnings are ignored.
"""

import json
import secrets
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from registry_client import RegistryError, RegistryTile, UploadResult

STATE_FILE = 'registry.json'


class LocalRegistry:
    def __init__(self, root: Path):
        self.root = root
        self.assets_dir = root / 'assets'
        self.stash: Dict[str, Tuple[str, bytes]] = {}
        self.state = self._load()

    # ─── State file ─────────────────────────────────────────────────────

    @property
    def state_path(self) -> Path:
        return self.root / STATE_FILE

    def _load(self) -> Dict:
        if not self.state_path.exists():
            return {'families': {}, 'tiles': [], 'next_id': 1}
        with open(self.state_path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _save(self):
        """Write the state file via a temp file and rename."""
        self.root.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile('w', dir=self.root, suffix='.tmp', delete=False,
                                         encoding='utf-8', newline='\n') as f:
            json.dump(self.state, f, indent=2)
            temp_path = Path(f.name)
        temp_path.replace(self.state_path)

    # ─── Registry interface ─────────────────────────────────────────────

    def list_families(self) -> List[Dict]:
        return [{'name': name, 'sizes': list(sizes)} for name, sizes in self.state['families'].items()]

    def create_family(self, name: str, sizes: Sequence[int]):
        if name in self.state['families']:
            raise RegistryError('sheetexists', f"Tilesheet family {name} already exists")
        self.state['families'][name] = [int(s) for s in sizes]
        self._save()

    def list_tiles(self, family: str) -> List[RegistryTile]:
        return [
            RegistryTile(t['name'], t['x'], t['y'], t['z'], t['id'])
            for t in self.state['tiles'] if t['family'] == family
        ]

    def add_tiles(self, family: str, tiles: Sequence[Tuple[int, int, int, str]]) -> List[str]:
        if family not in self.state['families']:
            raise RegistryError('nosheet', f"No tilesheet family named {family}")
        taken_names = {t['name'] for t in self.state['tiles'] if t['family'] == family}
        taken_positions = {(t['x'], t['y'], t['z']) for t in self.state['tiles'] if t['family'] == family}

        errors = []
        for x, y, z, name in tiles:
            if name in taken_names:
                errors.append(f"{name}: tile already exists")
                continue
            if (x, y, z) in taken_positions:
                errors.append(f"{name}: position {x} {y} {z} is taken")
                continue
            self.state['tiles'].append({
                'id': self.state['next_id'], 'family': family, 'name': name, 'x': x, 'y': y, 'z': z,
            })
            self.state['next_id'] += 1
            taken_names.add(name)
            taken_positions.add((x, y, z))
        self._save()
        return errors

    def delete_tiles(self, ids: Sequence[int]) -> List[str]:
        wanted = set(ids)
        found = {t['id'] for t in self.state['tiles'] if t['id'] in wanted}
        self.state['tiles'] = [t for t in self.state['tiles'] if t['id'] not in wanted]
        self._save()
        return [f"{i}: no such tile" for i in ids if i not in found]

    def download_asset(self, name: str) -> Optional[bytes]:
        path = self.assets_dir / name
        if not path.exists():
            return None
        return path.read_bytes()

    def upload_asset(self, name: str, data: Optional[bytes], comment: str,
                     filekey: Optional[str] = None, ignore_warnings: bool = False) -> UploadResult:
        if filekey is not None:
            if filekey not in self.stash:
                return UploadResult('error', errors=[f"stashfailed: unknown filekey {filekey}"])
            name, data = self.stash.pop(filekey)

        path = self.assets_dir / name
        if path.exists() and not ignore_warnings:
            key = secrets.token_hex(8)
            self.stash[key] = (name, data)
            return UploadResult('warning', warnings={'exists': name}, filekey=key)

        self.assets_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return UploadResult('success')
