from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from gurl.domain.models import HTTP_METHODS, METHOD_ANY, RouteRegistration
from gurl.extractors.gin.patterns import (
    ANY_ROUTE_RE,
    GROUP_ASSIGN_RE,
    HANDLE_ROUTE_RE,
    IDENT,
    METHOD_ROUTE_RE,
    PositionResolver,
    detect_gin_alias,
    join_paths,
    last_segment,
)

logger = logging.getLogger(__name__)


def _root_param_re(alias: str) -> re.Pattern[str]:
    # func Register(r *gin.Engine)  /  func Mount(rg *gin.RouterGroup, ...)
    a = re.escape(alias)
    return re.compile(rf"[(,]\s*({IDENT})\s*\*\s*{a}\.(?:Engine|RouterGroup)\b")


def _root_assign_re(alias: str) -> re.Pattern[str]:
    a = re.escape(alias)
    return re.compile(rf"\b({IDENT})\s*:?=\s*{a}\.(?:Default|New)\s*\(")


def build_group_prefix_map(source: str, gin_alias: Optional[str] = None) -> dict[str, str]:
    """
    Map router variables in one file to their full path prefix.

    Roots (gin.Default()/gin.New() results, *gin.Engine / *gin.RouterGroup
    parameters) map to "". A variable assigned from base.Group("/p") maps to
    base's prefix joined with "/p" once base is known. Repeats until a pass
    maps nothing new, so groups of groups resolve regardless of their order
    in the file. A variable keeps the first prefix it was given. A base that
    is never assigned in the file, such as a router returned by another
    package, is treated as a root once nothing else resolves.
    """
    alias = gin_alias or detect_gin_alias(source)
    prefixes: dict[str, str] = {}

    for m in _root_param_re(alias).finditer(source):
        prefixes.setdefault(m.group(1), "")
    for m in _root_assign_re(alias).finditer(source):
        prefixes.setdefault(m.group(1), "")

    assignments = [(m.group(1), m.group(2), m.group(3)) for m in GROUP_ASSIGN_RE.finditer(source)]

    _resolve_groups(prefixes, assignments)

    # a base never assigned in this file (r := setupRouter(), a parameter of
    # another type) contributes no prefix of its own
    children = {child for child, _, _ in assignments}
    for _, base, _ in assignments:
        if base not in prefixes and base not in children:
            prefixes[base] = ""
    _resolve_groups(prefixes, assignments)

    return prefixes


def _resolve_groups(prefixes: dict[str, str], assignments: list[tuple[str, str, str]]) -> None:
    # each productive pass maps at least one more variable
    for _ in range(len(assignments) + 1):
        changed = False
        for child, base, rel in assignments:
            if child in prefixes or base not in prefixes:
                continue
            prefixes[child] = join_paths(prefixes[base], rel)
            changed = True
        if not changed:
            break


def extract_routes_from_source(
    source: str,
    known_handlers: Iterable[str],
    file_path: str = "",
) -> list[RouteRegistration]:
    """
    Extract Gin route registrations from one Go file:
      r.GET("/users/:id", GetUser)
      api.Handle("POST", "/users", h.CreateUser)
      r.Any("/ping", Ping())
    Only registrations whose handler (last segment of the reference) is in
    known_handlers are kept.
    """
    known = set(known_handlers)
    alias = detect_gin_alias(source)
    prefixes = build_group_prefix_map(source, alias)
    pos = PositionResolver(source)

    found: list[tuple[int, RouteRegistration]] = []

    def add(m: re.Match[str], recv: str, method: str, rel_path: str, handler_ref: str) -> None:
        handler_name = last_segment(handler_ref)
        if handler_name not in known:
            logger.debug("dropping %s %s in %s: %s is not a known handler", method, rel_path, file_path, handler_ref)
            return
        found.append(
            (
                m.start(),
                RouteRegistration(
                    method=method,
                    path=join_paths(prefixes.get(recv, ""), rel_path),
                    handler_name=handler_name,
                    file_path=file_path,
                    span=pos.span(m.start(), m.end()),
                ),
            )
        )

    for m in METHOD_ROUTE_RE.finditer(source):
        add(m, m.group(1), m.group(2), m.group(3), m.group(4))

    for m in HANDLE_ROUTE_RE.finditer(source):
        method = m.group(2)
        if method not in HTTP_METHODS:
            continue
        add(m, m.group(1), method, m.group(3), m.group(4))

    for m in ANY_ROUTE_RE.finditer(source):
        add(m, m.group(1), METHOD_ANY, m.group(2), m.group(3))

    found.sort(key=lambda t: t[0])
    return [r for _, r in found]

