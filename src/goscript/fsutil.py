from __future__ import annotations

import os
import time
from pathlib import Path


def atomic_write_text(dst: Path, text: str, retries: int = 3, sleep_s: float = 0.1) -> None:
    """
    Write to a sibling temp file, then replace. Retries on PermissionError/OSError
    (editors and indexers sometimes hold the file for a moment).
    """
    tmp = dst.parent / (dst.name + ".tmp__writing__")

    last_err: Exception | None = None
    for i in range(retries):
        try:
            with open(tmp, "w", encoding="utf-8", newline="") as f:
                f.write(text)
            os.replace(tmp, dst)
            return
        except OSError as e:
            last_err = e
            time.sleep(sleep_s * (i + 1))

    tmp.unlink(missing_ok=True)
    raise last_err if last_err else OSError(f"could not write {dst}")


def remove_if_exists(path: Path) -> bool:
    """Remove a file; a missing file counts as success. Returns True if it existed."""
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


def is_existing_file(candidate: str | Path) -> bool:
    """True if `candidate` names a regular file. Names the OS rejects (too long, NUL bytes) are not files."""
    try:
        return Path(candidate).is_file()
    except (OSError, ValueError):
        return False
