#!/usr/bin/env python3

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from tilesheet_watcher import TileChangeHandler


class RecordingManager:
    def __init__(self, work_dir: Path, fail_with=None):
        self.work_dir = work_dir
        self.renames = None
        self.previews = 0
        self.fail_with = fail_with

    def preview(self):
        self.previews += 1
        if self.fail_with is not None:
            raise self.fail_with


class TileChangeHandlerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.work = Path(self._td.name)

    def test_png_changes_trigger_refresh(self) -> None:
        (self.work / 'renames.txt').write_text('Old=New\n')
        manager = RecordingManager(self.work)
        handler = TileChangeHandler(manager, debounce_seconds=0)

        self.assertFalse(handler.check_and_refresh())
        handler.on_any_event(FileCreatedEvent('/src/Stone.png'))
        with redirect_stdout(io.StringIO()):
            self.assertTrue(handler.check_and_refresh())

        self.assertEqual(manager.previews, 1)
        self.assertEqual(manager.renames, {'Old': 'New'})
        self.assertFalse(handler.check_and_refresh())

    def test_other_files_are_ignored(self) -> None:
        handler = TileChangeHandler(RecordingManager(self.work), debounce_seconds=0)
        handler.on_any_event(FileModifiedEvent('/src/notes.txt'))
        handler.on_any_event(DirCreatedEvent('/src/ores.png'))
        self.assertFalse(handler.pending_changes)

    def test_rename_to_png_counts(self) -> None:
        handler = TileChangeHandler(RecordingManager(self.work), debounce_seconds=0)
        handler.on_any_event(FileMovedEvent('/src/tmp.part', '/src/Stone.png'))
        self.assertTrue(handler.pending_changes)

    def test_waits_for_debounce(self) -> None:
        handler = TileChangeHandler(RecordingManager(self.work), debounce_seconds=3600)
        handler.on_any_event(FileCreatedEvent('/src/Stone.png'))
        self.assertFalse(handler.check_and_refresh())
        self.assertTrue(handler.pending_changes)

    def test_illegal_name_does_not_stop_watching(self) -> None:
        manager = RecordingManager(self.work, fail_with=SystemExit(1))
        handler = TileChangeHandler(manager, debounce_seconds=0)
        with redirect_stdout(io.StringIO()) as out:
            handler.refresh()
        self.assertEqual(manager.previews, 1)
        self.assertIn('not refreshed', out.getvalue())

    def test_errors_are_reported(self) -> None:
        manager = RecordingManager(self.work, fail_with=OSError('disk gone'))
        handler = TileChangeHandler(manager, debounce_seconds=0)
        with redirect_stdout(io.StringIO()) as out, redirect_stderr(io.StringIO()):
            handler.refresh()
        self.assertIn('disk gone', out.getvalue())


if __name__ == '__main__':
    unittest.main()
