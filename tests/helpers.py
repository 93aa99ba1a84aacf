"""Shared fakes for the tilesheet tests."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import Image

from registry_client import RegistryError, RegistryTile, UploadResult


def save_tile(path: Path, color: Tuple[int, int, int, int], size: int = 32) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new('RGBA', (size, size), color).save(path)
    return path


def scripted_input(*answers: str):
    """An input() replacement that returns the given answers in order."""
    pending = list(answers)
    prompts: List[str] = []

    def fake_input(prompt: str) -> str:
        prompts.append(prompt)
        if not pending:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return pending.pop(0)

    fake_input.prompts = prompts
    return fake_input


class FakeRegistry:
    """In-memory registry that records every call."""

    def __init__(self, families: Optional[Dict[str, List[int]]] = None,
                 tiles: Optional[List[RegistryTile]] = None):
        self.families = dict(families or {})
        self.tiles = list(tiles or [])
        self.assets: Dict[str, bytes] = {}
        self.created: List[Tuple[str, List[int]]] = []
        self.add_calls: List[list] = []
        self.delete_calls: List[list] = []
        self.uploads: List[str] = []
        self.fail_add_calls = set()

    def list_families(self):
        return [{'name': name, 'sizes': sizes} for name, sizes in self.families.items()]

    def create_family(self, name, sizes):
        self.created.append((name, list(sizes)))
        self.families[name] = list(sizes)

    def list_tiles(self, family):
        return list(self.tiles)

    def add_tiles(self, family, tiles):
        self.add_calls.append(list(tiles))
        if len(self.add_calls) in self.fail_add_calls:
            raise RegistryError('internal_api_error', 'database locked')
        return []

    def delete_tiles(self, ids):
        self.delete_calls.append(list(ids))
        return []

    def download_asset(self, name):
        return self.assets.get(name)

    def upload_asset(self, name, data, comment, filekey=None, ignore_warnings=False):
        self.uploads.append(name)
        self.assets[name] = data
        return UploadResult('success')
