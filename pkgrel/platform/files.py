"""Filesystem helpers."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

__all__ = ["FileSnapshot", "atomic_write_text"]


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically (temp file in the same directory + replace)."""
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


@dataclass(frozen=True, slots=True)
class FileSnapshot:
    """Byte-exact copy of a file, restorable after a dry run touched it."""

    path: Path
    content: bytes

    @classmethod
    def take(cls, path: Path) -> FileSnapshot:
        return cls(path=path, content=path.read_bytes())

    def changed(self) -> bool:
        try:
            return self.path.read_bytes() != self.content
        except OSError:
            return True

    def restore(self) -> None:
        if self.changed():
            self.path.write_bytes(self.content)
