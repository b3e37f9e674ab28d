from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from gurl.domain.models import (
    DEFAULT_BASE_URL,
    METHOD_ANY,
    GenerationOptions,
    LinkedHandler,
    RouteRegistration,
)
from gurl.requestgen.samples import placeholder, sample_value

_BODY_METHODS = {"POST", "PUT", "PATCH", "DELETE"}
_BODY_ENCODINGS = {"json", "form", "multipart"}
_LINE_JOIN = " \\\n\t"
# characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def shell_quote(s: str) -> str:
    """POSIX single quoting: ' becomes '\\''."""
    if s == "":
        return "''"
    return "'" + s.replace("'", "'\\''") + "'"


def _resolve_method(linked: LinkedHandler, route: Optional[RouteRegistration]) -> str:
    method = (route.method if route else "GET").upper()
    if method == METHOD_ANY:
        # curl needs a concrete verb; pick one that can carry the body
        return "POST" if linked.handler.shape.body_encoding in _BODY_ENCODINGS else "GET"
    return method


def _substitute_path_params(path: str, names: tuple[str, ...]) -> str:
    for p in names:
        path = re.sub(rf"[:*]{re.escape(p)}(?![A-Za-z0-9_])", lambda _m, p=p: f"<{p}>", path)
    return path


def _query_string(names: tuple[str, ...]) -> str:
    pairs = [f"{quote(q, safe=_URI_COMPONENT_SAFE)}=<{q}>" for q in names]
    return f"?{'&'.join(pairs)}" if pairs else ""


def _has_header(headers: dict[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(k.lower() == lowered for k in headers)


def build_headers(linked: LinkedHandler, options: GenerationOptions) -> dict[str, str]:
    shape = linked.handler.shape
    headers: dict[str, str] = dict(options.default_headers)
    for h in shape.headers:
        if _has_header(headers, h):
            continue
        if h.lower() == "authorization":
            headers[h] = "Bearer <token>"
        else:
            headers[h] = placeholder(h)
    if shape.cookies:
        headers = {k: v for k, v in headers.items() if k.lower() != "cookie"}
        headers["Cookie"] = "; ".join(f"{n}={placeholder(n)}" for n in shape.cookies)
    return headers


def build_json_body(linked: LinkedHandler, now: Optional[datetime] = None) -> str:
    fields = linked.handler.shape.json_fields
    if not fields:
        return "{}"
    obj = {f.name: sample_value(f.type, f.name, now) for f in fields}
    return json.dumps(obj)


def generate_curl(
    linked: LinkedHandler,
    route: Optional[RouteRegistration],
    options: GenerationOptions,
    now: Optional[datetime] = None,
) -> str:
    """
    Render a curl command for one handler.

    route=None (or a handler with no routes) falls back to GET /<handler name>.
    The output is multi-line, one flag per line, ready to paste into a POSIX shell.
    """
    handler = linked.handler
    shape = handler.shape

    method = _resolve_method(linked, route)
    path = route.path if route else f"/{handler.name}"
    url_path = _substitute_path_params(path, shape.path_params)
    query = _query_string(shape.query_params)

    headers = build_headers(linked, options)

    data_flag = ""
    body = ""
    if method in _BODY_METHODS:
        if shape.body_encoding == "json":
            if not _has_header(headers, "Content-Type"):
                headers["Content-Type"] = "application/json"
            data_flag = "-d"
            body = shell_quote(build_json_body(linked, now))
        elif shape.body_encoding == "form":
            if not _has_header(headers, "Content-Type"):
                headers["Content-Type"] = "application/x-www-form-urlencoded"
            data_flag = "--data-urlencode"
            if shape.query_params:
                first = shape.query_params[0]
                body = shell_quote(f"{first}={placeholder(first)}")
            else:
                body = "''"
        elif shape.body_encoding == "multipart":
            if not _has_header(headers, "Content-Type"):
                headers["Content-Type"] = "multipart/form-data"
            data_flag = "-F"
            body = shell_quote("file=@<path_to_file>")

    base_url = (options.base_url or DEFAULT_BASE_URL).rstrip("/")
    url = f"{base_url}{url_path}{query}"

    parts = ["curl", f"-X {method}"]
    parts.extend(f"-H {shell_quote(f'{k}: {v}')}" for k, v in headers.items())
    if data_flag and body:
        parts.append(f"{data_flag} {body}")
    parts.append(shell_quote(url))
    return _LINE_JOIN.join(parts)
