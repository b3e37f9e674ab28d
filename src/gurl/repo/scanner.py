from __future__ import annotations

import logging
import os
from pathlib import Path

from gurl.repo.ignore import should_ignore_dir

logger = logging.getLogger(__name__)


def scan_go_files(repo_path: Path, max_files: int | None = None) -> list[str]:
    """
    Return absolute paths (as strings) of .go files under repo_path, sorted.
    vendor/, .git/ and similar directories are pruned.
    """
    out: list[str] = []
    for root, dirs, files in _walk(repo_path):
        root_p = Path(root)

        # prune ignored dirs; sort so the walk order is stable
        dirs[:] = sorted(d for d in dirs if not should_ignore_dir(root_p / d))

        for f in sorted(files):
            if f.endswith(".go"):
                out.append(str((root_p / f).resolve()))
                if max_files is not None and len(out) >= max_files:
                    return out
    return out


def _walk(repo_path: Path):
    return os.walk(repo_path)


def read_source(path: str, max_bytes: int = 2_000_000) -> str:
    """File text decoded as utf-8; unreadable files come back empty."""
    try:
        with open(path, "rb") as f:
            data = f.read(max_bytes)
    except OSError as e:
        logger.debug("cannot read %s: %s", path, e)
        return ""
    return data.decode("utf-8", errors="ignore")
