#!/usr/bin/env python3
"""
Tilesheet Source Watcher

Watches a family's source directory and refreshes additions.txt and
missing.txt whenever PNGs are added, changed, renamed or removed, so the
lists are current by the time someone runs the updater. The registry is read
once at startup and never modified.

Usage:
  python tilesheet_watcher.py Minecraft [--source-dir tilesheets] [--work-dir work] [--debounce 3]
"""

import sys
import time
import traceback

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from tile_sources import load_renames
from tilesheet_manager import TilesheetManager
from update_tilesheets import RENAMES_FILE, build_parser, create_manager


class TileChangeHandler(FileSystemEventHandler):
    """Records PNG changes; the main loop does the work after a quiet period."""

    def __init__(self, manager: TilesheetManager, debounce_seconds: float = 3.0):
        self.manager = manager
        self.debounce_seconds = debounce_seconds
        self.last_change_time = 0.0
        self.pending_changes = False

    def on_any_event(self, event):
        if event.is_directory:
            return
        paths = [event.src_path, getattr(event, 'dest_path', '')]
        if any(str(p).lower().endswith('.png') for p in paths if p):
            self.last_change_time = time.time()
            self.pending_changes = True

    def check_and_refresh(self) -> bool:
        """Refresh the lists once the debounce time has passed. Returns True if refreshed."""
        if not self.pending_changes:
            return False
        if time.time() - self.last_change_time < self.debounce_seconds:
            return False
        self.pending_changes = False
        self.refresh()
        return True

    def refresh(self):
        print("🔄 Refreshing tile lists...")
        try:
            self.manager.renames = load_renames(self.manager.work_dir / RENAMES_FILE)
            self.manager.preview()
        except SystemExit:
            # An illegal name ends a real run; here it is reported and watching goes on
            print("⚠️  Fix the tile name above; lists not refreshed")
        except Exception as e:
            print(f"❌ Refresh failed: {e}")
            traceback.print_exc()


def main() -> int:
    parser = build_parser()
    parser.description = 'Watch a tilesheet family source directory and keep the review lists current'
    parser.add_argument(
        '--debounce',
        type=float,
        default=3.0,
        help='Seconds to wait after last change before refreshing (default: 3.0)'
    )
    args = parser.parse_args()

    manager = create_manager(args)
    manager.import_registry(create_missing=False)

    handler = TileChangeHandler(manager, args.debounce)
    handler.refresh()

    print()
    print(f"📁 Watching:  {manager.source_dir.absolute()}")
    print(f"📝 Lists:     {manager.work_dir.absolute()}")
    print(f"⏱️  Debounce:  {args.debounce} seconds")
    print()
    print("👀 Watching for changes... (Press Ctrl+C to stop)")

    observer = Observer()
    observer.schedule(handler, str(manager.source_dir), recursive=True)
    observer.start()

    try:
        while True:
            time.sleep(0.5)
            handler.check_and_refresh()
    except KeyboardInterrupt:
        print()
        print("🛑 Stopping watcher...")
        observer.stop()

    observer.join()
    print("✅ Watcher stopped")
    return 0


if __name__ == '__main__':
    sys.exit(main())
