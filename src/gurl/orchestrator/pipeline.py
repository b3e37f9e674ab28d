from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from gurl.domain.models import HandlerDefinition, LinkedHandler, RouteRegistration, SourceFile
from gurl.extractors.gin.handlers import extract_handlers_from_source
from gurl.extractors.gin.patterns import detect_gin_alias
from gurl.extractors.gin.routes import extract_routes_from_source
from gurl.extractors.gin.structs import enrich_json_fields
from gurl.graph.linker import infer_base_url, link_handlers_to_routes
from gurl.repo.scanner import read_source, scan_go_files

logger = logging.getLogger(__name__)


class ScanCancelled(Exception):
    """The workspace scan was cancelled before every file was read."""


@dataclass(frozen=True)
class AnalyzeResult:
    sources: list[SourceFile]
    handlers: list[HandlerDefinition]
    routes: list[RouteRegistration]
    linked: list[LinkedHandler]
    inferred_base_url: Optional[str]

    @property
    def files_scanned(self) -> int:
        return len(self.sources)

    def find(self, handler_name: str) -> list[LinkedHandler]:
        return [lh for lh in self.linked if lh.name == handler_name]


def analyze_sources(sources: Iterable[SourceFile]) -> AnalyzeResult:
    """
    Run the whole extraction over in-memory sources.

    Handlers are collected from every file first, since a route in one file
    may point at a handler declared in another.
    """
    sources = list(sources)

    handlers: list[HandlerDefinition] = []
    for src in sources:
        alias = detect_gin_alias(src.text)
        handlers.extend(extract_handlers_from_source(src.text, file_path=src.path, gin_alias=alias))

    known = {h.name for h in handlers}
    routes: list[RouteRegistration] = []
    for src in sources:
        routes.extend(extract_routes_from_source(src.text, known, file_path=src.path))

    handlers = enrich_json_fields(handlers, sources)
    linked = link_handlers_to_routes(handlers, routes)

    logger.info(
        "analyzed %d files: %d handlers, %d routes", len(sources), len(handlers), len(routes)
    )
    return AnalyzeResult(
        sources=sources,
        handlers=handlers,
        routes=routes,
        linked=linked,
        inferred_base_url=infer_base_url(sources),
    )


def load_sources(
    repo_path: Path,
    max_files: int | None = None,
    workers: int = 8,
    cancel: Optional[threading.Event] = None,
) -> list[SourceFile]:
    """
    Read every Go file under repo_path concurrently.

    Paths in the result are repo-relative. Raises ScanCancelled if cancel is
    set before all reads finish; partial results are never returned.
    """
    repo_path = repo_path.resolve()
    paths = scan_go_files(repo_path, max_files=max_files)

    def read(p: str) -> Optional[SourceFile]:
        if cancel is not None and cancel.is_set():
            return None
        return SourceFile(path=os.path.relpath(p, str(repo_path)), text=read_source(p))

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        results = list(pool.map(read, paths))

    if cancel is not None and cancel.is_set():
        raise ScanCancelled(f"scan of {repo_path} cancelled")
    return [r for r in results if r is not None]


def run_analyze(
    repo_path: Path,
    max_files: int | None = None,
    workers: int = 8,
    cancel: Optional[threading.Event] = None,
) -> AnalyzeResult:
    sources = load_sources(repo_path, max_files=max_files, workers=workers, cancel=cancel)
    return analyze_sources(sources)
