from __future__ import annotations

import logging
import re
from typing import Iterable, Optional, Sequence

from gurl.domain.models import (
    DEFAULT_BASE_URL,
    HandlerDefinition,
    LinkedHandler,
    RouteRegistration,
    SourceFile,
)
from gurl.extractors.gin.patterns import (
    SERVER_RUN_BARE_RE,
    SERVER_RUN_LITERAL_RE,
    SERVER_RUN_TLS_LITERAL_RE,
    imports_gin,
)

logger = logging.getLogger(__name__)

_ADDR_RE = re.compile(r"^(?:(\[[^\]]*\]|[^:\[\]]*):)?(\d+)$")
_ANY_HOST = {"", "0.0.0.0", "[::]", "::"}


def link_handlers_to_routes(
    handlers: Iterable[HandlerDefinition],
    routes: Iterable[RouteRegistration],
) -> list[LinkedHandler]:
    """
    Pair every handler with the routes naming it.

    Matching is by bare name, so two handlers called `List` in different
    packages both get every `List` route; per-file origin stays on the handler.
    """
    by_name: dict[str, list[RouteRegistration]] = {}
    for r in routes:
        by_name.setdefault(r.handler_name, []).append(r)
    return [LinkedHandler(handler=h, routes=tuple(by_name.get(h.name, ()))) for h in handlers]


def address_to_base_url(address: str, tls: bool = False) -> Optional[str]:
    """
    ":8080" -> http://localhost:8080, "api.local:80" -> http://api.local:80.
    Returns None for anything that isn't a [host]:port literal.
    """
    m = _ADDR_RE.match(address.strip())
    if m is None:
        return None
    host = m.group(1) or ""
    if host in _ANY_HOST:
        host = "localhost"
    scheme = "https" if tls else "http"
    return f"{scheme}://{host}:{m.group(2)}"


def infer_base_url(sources: Sequence[SourceFile]) -> Optional[str]:
    """
    Best-effort base URL from server start calls anywhere in the sources:
      r.Run(":9000")                      -> http://localhost:9000
      r.RunTLS(":8443", "cert", "key")    -> https://localhost:8443
      r.Run()                             -> http://localhost:8080 (gin's default)
    The first literal address wins. A bare Run() only counts in files that
    import gin. None means nothing usable was found.
    """
    saw_bare_run = False
    for src in sources:
        hits: list[tuple[int, str]] = []
        for m in SERVER_RUN_LITERAL_RE.finditer(src.text):
            url = address_to_base_url(m.group(1))
            if url:
                hits.append((m.start(), url))
        for m in SERVER_RUN_TLS_LITERAL_RE.finditer(src.text):
            url = address_to_base_url(m.group(1), tls=True)
            if url:
                hits.append((m.start(), url))
        if hits:
            hits.sort()
            logger.debug("base url %s inferred from %s", hits[0][1], src.path)
            return hits[0][1]

        if imports_gin(src.text) and SERVER_RUN_BARE_RE.search(src.text):
            saw_bare_run = True

    if saw_bare_run:
        return DEFAULT_BASE_URL
    return None
