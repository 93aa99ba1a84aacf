#!/usr/bin/env python3
"""
Console confirmation channel.

Before anything is changed in the registry the pending additions and missing
tiles are written to text files for a human to inspect, together with an
empty todelete.txt. The run only continues once "continue" is typed.
"""

import sys
from pathlib import Path
from typing import Callable, Iterable, List

ADDITIONS_FILE = 'additions.txt'
MISSING_FILE = 'missing.txt'
TODELETE_FILE = 'todelete.txt'


def write_lines(path: Path, lines: Iterable[str]):
    with open(path, 'w', encoding='utf-8', newline='\n') as f:
        for line in lines:
            f.write(f"{line}\n")


def read_lines(path: Path) -> List[str]:
    if not path.exists():
        return []
    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]


class ConfirmationGate:
    def __init__(self, list_dir: Path, input_func: Callable[[str], str] = input):
        self.list_dir = list_dir
        self.input_func = input_func

    @property
    def additions_path(self) -> Path:
        return self.list_dir / ADDITIONS_FILE

    @property
    def missing_path(self) -> Path:
        return self.list_dir / MISSING_FILE

    @property
    def todelete_path(self) -> Path:
        return self.list_dir / TODELETE_FILE

    def ask(self, prompt: str) -> str:
        return self.input_func(prompt).strip()

    def ask_yes_no(self, prompt: str) -> bool:
        return self.ask(f"{prompt} (yes/no): ").lower() in ('y', 'yes')

    def write_lists(self, added: Iterable[str], missing: Iterable[str]):
        """Write the inspection lists and an empty deletion list."""
        self.list_dir.mkdir(parents=True, exist_ok=True)
        write_lines(self.additions_path, added)
        write_lines(self.missing_path, sorted(missing))
        write_lines(self.todelete_path, [])

    def confirm(self, added: List[str], missing: Iterable[str]) -> List[str]:
        """Block until the human acknowledges the lists.

        Returns:
            Tile names the human put in todelete.txt
        """
        missing = sorted(missing)
        self.write_lists(added, missing)

        print(f"📝 {len(added)} tile(s) to add:      {self.additions_path}")
        print(f"📝 {len(missing)} tile(s) missing:    {self.missing_path}")
        print(f"📝 Tiles to delete go in:  {self.todelete_path}")
        print()
        response = self.ask("Review the lists, then type 'continue' to proceed: ")
        if response.lower() != 'continue':
            print("Aborted.")
            sys.exit(0)

        return read_lines(self.todelete_path)
