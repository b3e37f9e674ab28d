from __future__ import annotations

from pathlib import Path

DEFAULT_IGNORES = {
    ".git",
    "vendor",
    "node_modules",
    "testdata",
    "bin",
    "dist",
    "build",
    ".idea",
    ".vscode",
}


def should_ignore_dir(dir_path: Path) -> bool:
    return dir_path.name in DEFAULT_IGNORES
