from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from gurl.domain.models import HandlerDefinition, SourceFile, StructFieldDescriptor
from gurl.extractors.gin.patterns import IDENT, STRUCT_DECL_TEMPLATE, find_matching_brace

logger = logging.getLogger(__name__)

_FIELD_LINE_RE = re.compile(
    rf"^({IDENT}(?:\s*,\s*{IDENT})*)\s+([^`]+?)\s*(`[^`]*`)?\s*$"
)
_JSON_TAG_RE = re.compile(r"\bjson:\"([^\"]*)\"")
_QUOTED_OR_COMMENT_RE = re.compile(r"//|`[^`]*`|\"(?:\\.|[^\"\\])*\"")


def lower_camel(identifier: str) -> str:
    """
    Go exported name -> JSON-ish key, the way encoders usually spell it:
      Age -> age, UserID -> userID, URLPath -> urlPath, ID -> id
    """
    if not identifier:
        return identifier
    if identifier.isupper():
        return identifier.lower()

    run = 0
    while run < len(identifier) and identifier[run].isupper():
        run += 1
    if run <= 1:
        return identifier[:1].lower() + identifier[1:]
    # acronym followed by a word: keep the word's capital
    return identifier[: run - 1].lower() + identifier[run - 1 :]


def strip_line_comment(line: str) -> str:
    """Drop a trailing // comment, leaving // inside tags and string literals alone."""
    for m in _QUOTED_OR_COMMENT_RE.finditer(line):
        if m.group(0) == "//":
            return line[: m.start()]
    return line


def find_struct_body(source: str, type_name: str) -> Optional[str]:
    """Inner text of `type <type_name> struct { ... }`, or None."""
    name = re.escape(type_name)
    m = re.search(STRUCT_DECL_TEMPLATE.format(name=name), source)
    if m is None:
        # grouped declaration: type ( Name struct { ... } )
        m = re.search(rf"(?m)^[ \t]*{name}\s+struct\s*\{{", source)
    if m is None:
        return None
    open_idx = m.end() - 1
    close_idx = find_matching_brace(source, open_idx)
    if close_idx < 0:
        return None
    return source[open_idx + 1 : close_idx]


def parse_struct_fields(struct_body: str) -> list[StructFieldDescriptor]:
    fields: list[StructFieldDescriptor] = []
    seen: set[str] = set()
    depth = 0

    for raw in struct_body.splitlines():
        line = strip_line_comment(raw).strip()
        if not line:
            continue

        line_depth = depth
        depth += line.count("{") - line.count("}")
        if line_depth > 0:
            # inside an anonymous nested struct
            continue

        m = _FIELD_LINE_RE.match(line)
        if m is None:
            # embedded field (single identifier) or something we don't read
            continue

        names = [n.strip() for n in m.group(1).split(",")]
        decl_type = m.group(2).strip()
        if decl_type.endswith("{"):
            decl_type = decl_type[:-1].strip()
        tag = m.group(3) or ""

        tag_name = None
        tm = _JSON_TAG_RE.search(tag)
        if tm:
            tag_name = tm.group(1).split(",", 1)[0]
            if tag_name == "-":
                continue

        for ident in names:
            name = tag_name if tag_name and len(names) == 1 else lower_camel(ident)
            if name in seen:
                continue
            seen.add(name)
            fields.append(StructFieldDescriptor(name=name, type=decl_type))

    return fields


def resolve_struct_fields(sources: Sequence[SourceFile], type_name: str) -> list[StructFieldDescriptor]:
    """
    Fields of the struct named type_name, looked up across every scanned file.

    Types declared outside the scanned files can't be resolved; that yields [].
    """
    for src in sources:
        if "struct" not in src.text or type_name not in src.text:
            continue
        body = find_struct_body(src.text, type_name)
        if body is not None:
            return parse_struct_fields(body)
    logger.debug("struct %s not found in scanned sources", type_name)
    return []


def enrich_json_fields(
    handlers: Iterable[HandlerDefinition], sources: Sequence[SourceFile]
) -> list[HandlerDefinition]:
    """Return handlers whose JSON-bound type has its resolved field list attached."""
    cache: dict[str, tuple[StructFieldDescriptor, ...]] = {}
    out: list[HandlerDefinition] = []
    for h in handlers:
        type_name = h.shape.json_type
        if h.shape.body_encoding != "json" or not type_name:
            out.append(h)
            continue
        if type_name not in cache:
            cache[type_name] = tuple(resolve_struct_fields(sources, type_name))
        out.append(replace(h, shape=replace(h.shape, json_fields=cache[type_name])))
    return out
