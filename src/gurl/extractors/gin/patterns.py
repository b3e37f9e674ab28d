"""
Regex building blocks for reading Gin code without parsing Go.

Every matcher here is narrow on purpose: it targets one syntactic idiom and
operates over the full text of one source file. Literals pulled out of the
source are opaque strings; they are re.escape()d whenever they end up inside
another pattern.
"""
from __future__ import annotations

import bisect
import re
from typing import Iterable, Optional

from gurl.domain.models import HTTP_METHODS, Position, SourceSpan

GIN_IMPORT_PATH = "github.com/gin-gonic/gin"
DEFAULT_GIN_ALIAS = "gin"

IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
QUALIFIED_IDENT = rf"{IDENT}(?:\.{IDENT})*"

_IMPORT_BLOCK = re.compile(r"\bimport\s*\(([^)]*)\)", re.DOTALL)
_IMPORT_BLOCK_LINE = re.compile(
    rf"(?:^|\n)[ \t]*({IDENT}|\.)?[ \t]*\"{re.escape(GIN_IMPORT_PATH)}\""
)
_IMPORT_SINGLE = re.compile(
    rf"\bimport[ \t]+({IDENT}|\.)?[ \t]*\"{re.escape(GIN_IMPORT_PATH)}\""
)

_HANDLER_REF = rf"({QUALIFIED_IDENT})(?:\s*\(\s*\))?"

METHOD_ROUTE_RE = re.compile(
    rf"\b({IDENT})\.({'|'.join(HTTP_METHODS)})\s*\(\s*\"([^\"]*)\"\s*,\s*{_HANDLER_REF}"
)
HANDLE_ROUTE_RE = re.compile(
    rf"\b({IDENT})\.Handle\s*\(\s*\"([A-Z]+)\"\s*,\s*\"([^\"]*)\"\s*,\s*{_HANDLER_REF}"
)
ANY_ROUTE_RE = re.compile(
    rf"\b({IDENT})\.Any\s*\(\s*\"([^\"]*)\"\s*,\s*{_HANDLER_REF}"
)

# child := base.Group("/prefix", ...)  /  child = base.Group("/prefix")
GROUP_ASSIGN_RE = re.compile(
    rf"\b({IDENT})\s*:?=\s*({IDENT})\.Group\s*\(\s*\"([^\"]*)\""
)

STRUCT_DECL_TEMPLATE = r"\btype\s+{name}\s+struct\s*\{{"

SERVER_RUN_LITERAL_RE = re.compile(r"\.Run\s*\(\s*\"([^\"]*)\"\s*\)")
SERVER_RUN_TLS_LITERAL_RE = re.compile(r"\.RunTLS\s*\(\s*\"([^\"]*)\"\s*,")
SERVER_RUN_BARE_RE = re.compile(r"\.Run\s*\(\s*\)")


def detect_gin_alias(text: str) -> str:
    """
    Return the identifier the file uses for the gin package.

    Handles grouped and single imports:
      import (
          g "github.com/gin-gonic/gin"
      )
      import "github.com/gin-gonic/gin"
    Unaliased, blank and dot imports all fall back to "gin".
    """
    for block in _IMPORT_BLOCK.finditer(text):
        m = _IMPORT_BLOCK_LINE.search(block.group(1))
        if m:
            return _usable_alias(m.group(1))

    m = _IMPORT_SINGLE.search(text)
    if m:
        return _usable_alias(m.group(1))
    return DEFAULT_GIN_ALIAS


def _usable_alias(alias: Optional[str]) -> str:
    if not alias or alias in ("_", "."):
        return DEFAULT_GIN_ALIAS
    return alias


def imports_gin(text: str) -> bool:
    return f'"{GIN_IMPORT_PATH}"' in text


def find_matching_brace(text: str, open_index: int) -> int:
    """
    Index of the '}' closing the '{' at open_index, or -1.

    Counts every brace it sees; braces inside strings or comments are not
    special-cased, so odd inputs can mis-match.
    """
    depth = 0
    for i in range(open_index, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_accessor_args(
    body: str, ctx_var: Optional[str], accessors: Iterable[str]
) -> list[str]:
    """
    Collect "<literal>" from every <ctx>.<accessor>("<literal>", ...) call in body.

    ctx_var=None matches any receiver identifier. Accessor names may be dotted
    (e.g. "Request.Header.Get").
    """
    receiver = re.escape(ctx_var) if ctx_var else IDENT
    names = "|".join(re.escape(a) for a in accessors)
    pattern = re.compile(rf"\b{receiver}\.(?:{names})\s*\(\s*\"([^\"]+)\"")
    return [m.group(1) for m in pattern.finditer(body)]


def calls_any(body: str, ctx_var: Optional[str], methods: Iterable[str], require_call: bool = True) -> bool:
    receiver = re.escape(ctx_var) if ctx_var else IDENT
    names = "|".join(re.escape(m) for m in methods)
    tail = r"\s*\(" if require_call else r"\b"
    return re.search(rf"\b{receiver}\.(?:{names}){tail}", body) is not None


def join_paths(prefix: str, path: str) -> str:
    left = prefix[:-1] if prefix.endswith("/") else prefix
    right = path if path.startswith("/") else f"/{path}"
    return left + right


def last_segment(qualified: str) -> str:
    return qualified.rsplit(".", 1)[-1]


def dedupe(values: Iterable[str]) -> tuple[str, ...]:
    # dict keeps first-seen order
    return tuple(dict.fromkeys(values))


class PositionResolver:
    """Translate character offsets in one text into line/column positions."""

    def __init__(self, text: str) -> None:
        self._line_starts = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)

    def position(self, offset: int) -> Position:
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(offset=offset, line=line, column=offset - self._line_starts[line])

    def span(self, start: int, end: int) -> SourceSpan:
        return SourceSpan(start=self.position(start), end=self.position(end))
