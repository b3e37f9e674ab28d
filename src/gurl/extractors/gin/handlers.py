from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional

from gurl.domain.models import BodyEncoding, HandlerDefinition, RequestShape
from gurl.extractors.gin.patterns import (
    IDENT,
    PositionResolver,
    QUALIFIED_IDENT,
    calls_any,
    dedupe,
    detect_gin_alias,
    extract_accessor_args,
    find_matching_brace,
    last_segment,
)

logger = logging.getLogger(__name__)

_JSON_BIND = ("ShouldBindJSON", "BindJSON")
_MULTIPART = ("FormFile", "MultipartForm")
_FORM_BIND = ("PostForm",)
_QUERY_BIND = ("ShouldBindQuery", "BindQuery")
_GENERIC_BIND = ("ShouldBind", "Bind")

_QUERY_ACCESSORS = (
    "Query",
    "DefaultQuery",
    "QueryArray",
    "QueryMap",
    "GetQuery",
    "GetQueryArray",
    "GetQueryMap",
)
_PATH_ACCESSORS = ("Param",)
_HEADER_ACCESSORS = ("GetHeader", "Request.Header.Get")
_COOKIE_ACCESSORS = ("Cookie",)


def _handler_func_re(alias: str) -> re.Pattern[str]:
    # func (recv) Name(c *gin.Context) {
    a = re.escape(alias)
    return re.compile(
        rf"\bfunc\s*(?:\([^)]*\)\s*)?({IDENT})\s*\(([^)]*\b{a}\.Context[^)]*)\)\s*\{{"
    )


def _factory_func_re(alias: str) -> re.Pattern[str]:
    # func (recv) Name() gin.HandlerFunc {   /   func Name() (gin.HandlerFunc) {
    a = re.escape(alias)
    return re.compile(
        rf"\bfunc\s*(?:\([^)]*\)\s*)?({IDENT})\s*\(\s*\)\s*"
        rf"(?:\(\s*{a}\.HandlerFunc\s*\)|{a}\.HandlerFunc)\s*\{{"
    )


def _inner_literal_re(alias: str) -> re.Pattern[str]:
    a = re.escape(alias)
    return re.compile(rf"\bfunc\s*\(\s*({IDENT})\s*\*\s*{a}\.Context\s*\)\s*\{{")


def _context_param_re(alias: str) -> re.Pattern[str]:
    a = re.escape(alias)
    return re.compile(rf"({IDENT})\s*\*\s*{a}\.Context\b")


def extract_handlers_from_source(
    source: str,
    file_path: str = "",
    gin_alias: Optional[str] = None,
) -> list[HandlerDefinition]:
    """
    Find Gin handlers in one Go file.

    Recognized shapes:
      func Name(c *gin.Context) { ... }              (free function or method)
      func Name() gin.HandlerFunc {                  (factory; the returned
          return func(c *gin.Context) { ... }         literal is the handler)
      }
    Results are ordered by where the handler name appears in the file.
    """
    alias = gin_alias or detect_gin_alias(source)
    pos = PositionResolver(source)
    found: list[tuple[int, HandlerDefinition]] = []

    for m in _handler_func_re(alias).finditer(source):
        name = m.group(1)
        open_idx = m.end() - 1
        ctx = _first_group(_context_param_re(alias), m.group(2))
        shape = _shape_for_body(source, open_idx, ctx, name)
        found.append(
            (
                m.start(1),
                HandlerDefinition(
                    name=name,
                    file_path=file_path,
                    name_span=pos.span(m.start(1), m.end(1)),
                    context_param=ctx,
                    gin_alias=alias,
                    shape=shape,
                ),
            )
        )

    inner_re = _inner_literal_re(alias)
    for m in _factory_func_re(alias).finditer(source):
        name = m.group(1)
        open_idx = m.end() - 1
        close_idx = find_matching_brace(source, open_idx)
        if close_idx < 0:
            logger.debug("unbalanced braces in factory %s in %s; skipped", name, file_path)
            continue
        inner = inner_re.search(source, open_idx, close_idx + 1)
        if inner is None:
            logger.debug("factory %s in %s returns no inline handler literal; skipped", name, file_path)
            continue

        ctx = inner.group(1)
        shape = _shape_for_body(source, inner.end() - 1, ctx, name)
        found.append(
            (
                m.start(1),
                HandlerDefinition(
                    name=name,
                    file_path=file_path,
                    name_span=pos.span(m.start(1), m.end(1)),
                    context_param=ctx,
                    gin_alias=alias,
                    shape=shape,
                ),
            )
        )

    found.sort(key=lambda t: t[0])
    return [h for _, h in found]


def handler_body(source: str, open_idx: int) -> Optional[str]:
    """Text from the '{' at open_idx through its matching '}', or None if unbalanced."""
    close_idx = find_matching_brace(source, open_idx)
    if close_idx < 0:
        return None
    return source[open_idx : close_idx + 1]


def _shape_for_body(source: str, open_idx: int, ctx: Optional[str], name: str) -> RequestShape:
    body = handler_body(source, open_idx)
    if body is None:
        logger.debug("unbalanced braces in body of %s; request shape left unknown", name)
        return RequestShape()
    return infer_request_shape(body, ctx)


def classify_body(body: str, ctx: Optional[str]) -> BodyEncoding:
    """
    Decide the request body encoding a handler expects.

    Order matters and is fixed: JSON bind, multipart, form, then query-only
    and generic binds which both mean "no body we can describe".
    """
    if calls_any(body, ctx, _JSON_BIND):
        return "json"
    if calls_any(body, ctx, _MULTIPART, require_call=False):
        return "multipart"
    if calls_any(body, ctx, _FORM_BIND):
        return "form"
    if calls_any(body, ctx, _QUERY_BIND):
        return "none"
    if calls_any(body, ctx, _GENERIC_BIND):
        # no suffix: could be anything, don't guess JSON
        return "none"
    return "none"


def infer_request_shape(body: str, ctx: Optional[str]) -> RequestShape:
    encoding = classify_body(body, ctx)
    shape = RequestShape(
        path_params=dedupe(extract_accessor_args(body, ctx, _PATH_ACCESSORS)),
        query_params=dedupe(extract_accessor_args(body, ctx, _QUERY_ACCESSORS)),
        headers=dedupe(extract_accessor_args(body, ctx, _HEADER_ACCESSORS)),
        cookies=dedupe(extract_accessor_args(body, ctx, _COOKIE_ACCESSORS)),
        body_encoding=encoding,
    )
    if encoding == "json":
        shape = replace(shape, json_type=find_json_bound_type(body, ctx))
    return shape


def _json_bind_arg_re(ctx: Optional[str]) -> re.Pattern[str]:
    receiver = re.escape(ctx) if ctx else IDENT
    names = "|".join(_JSON_BIND)
    # c.ShouldBindJSON(&Signup{...})  or  c.ShouldBindJSON(&req)
    return re.compile(
        rf"\b{receiver}\.(?:{names})\s*\(\s*&\s*({QUALIFIED_IDENT})\s*(\{{)?"
    )


def find_json_bound_type(body: str, ctx: Optional[str]) -> Optional[str]:
    """
    Name of the struct type passed to the JSON bind call, best effort.

    For &T{} the type is read directly; for &v the body is searched for how v
    was declared (var v T, v := T{}, v := &T{}, v := new(T)).
    """
    m = _json_bind_arg_re(ctx).search(body)
    if m is None:
        return None
    ref = m.group(1)
    if m.group(2):
        return last_segment(ref)
    if "." in ref:
        # &req.Payload and the like; no local declaration to look up
        return None
    return _local_var_type(body, ref)


def _local_var_type(body: str, var: str) -> Optional[str]:
    v = re.escape(var)
    candidates = (
        rf"\bvar\s+{v}\s+\*?\s*({QUALIFIED_IDENT})",
        rf"\b{v}\s*:?=\s*&?\s*({QUALIFIED_IDENT})\s*\{{",
        rf"\b{v}\s*:?=\s*new\s*\(\s*({QUALIFIED_IDENT})\s*\)",
    )
    for pattern in candidates:
        m = re.search(pattern, body)
        if m and m.group(1) != "struct":
            return last_segment(m.group(1))
    return None


def _first_group(pattern: re.Pattern[str], text: str) -> Optional[str]:
    m = pattern.search(text)
    return m.group(1) if m else None
