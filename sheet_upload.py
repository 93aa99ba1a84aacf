#!/usr/bin/env python3
"""
Upload of composed tilesheets to the registry.

Uploads run through a small state machine:

    INITIAL ──success──────────────────────────────▶ DONE
       │ ──error (logged)──────────────────────────▶ DONE
       │ ──warning, only "exists"──┐
       │ ──warning, human says yes─┴▶ RETRY_WITH_KEY ──▶ DONE
       └ ──warning, human says no──────────────────▶ DONE

The retry resumes the stashed upload with its filekey and ignores warnings.
There is never more than one retry.
"""

import enum
from pathlib import Path

from registry_client import UploadResult

# Overwriting a sheet is the normal case, so this warning alone is expected
OVERWRITE_WARNINGS = {'exists'}


class UploadState(enum.Enum):
    INITIAL = 'initial'
    RETRY_WITH_KEY = 'retry-with-key'
    DONE = 'done'


def describe_warnings(result: UploadResult) -> str:
    return ', '.join(f"{code} ({detail})" for code, detail in result.warnings.items())


def upload_sheet(registry, gate, path: Path, comment: str = 'Updated tilesheet') -> bool:
    """Upload one sheet file. Returns True if the registry accepted it.

    Raises:
        RuntimeError: If the registry replies with a status it should never use
    """
    name = path.name
    state = UploadState.INITIAL
    uploaded = False
    filekey = None

    while state is not UploadState.DONE:
        if state is UploadState.INITIAL:
            result = registry.upload_asset(name, path.read_bytes(), comment)
        else:
            result = registry.upload_asset(name, None, comment, filekey=filekey, ignore_warnings=True)

        if result.status == 'success':
            print(f"✅ Uploaded {name}")
            uploaded = True
            state = UploadState.DONE
        elif result.status == 'error':
            print(f"❌ Failed to upload {name}: {'; '.join(result.errors)}")
            state = UploadState.DONE
        elif result.status == 'warning':
            if state is UploadState.RETRY_WITH_KEY:
                print(f"❌ Upload of {name} still has warnings: {describe_warnings(result)}")
                state = UploadState.DONE
            elif set(result.warnings) <= OVERWRITE_WARNINGS and result.filekey:
                filekey = result.filekey
                state = UploadState.RETRY_WITH_KEY
            else:
                print(f"⚠️  Upload of {name} has warnings: {describe_warnings(result)}")
                if result.filekey and gate.ask_yes_no("Ignore the warnings and upload anyway?"):
                    filekey = result.filekey
                    state = UploadState.RETRY_WITH_KEY
                else:
                    print(f"   Skipped {name}")
                    state = UploadState.DONE
        else:
            raise RuntimeError(f"Unrecognised upload status {result.status!r} for {name}")

    return uploaded
