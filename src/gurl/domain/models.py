from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

BodyEncoding = Literal["json", "form", "multipart", "none", "unknown"]

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD")
METHOD_ANY = "ANY"

DEFAULT_BASE_URL = "http://localhost:8080"


@dataclass(frozen=True)
class Position:
    offset: int
    line: int  # 0-based
    column: int  # 0-based


@dataclass(frozen=True)
class SourceSpan:
    start: Position
    end: Position


@dataclass(frozen=True)
class StructFieldDescriptor:
    name: str
    type: str


@dataclass(frozen=True)
class RequestShape:
    path_params: tuple[str, ...] = ()
    query_params: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()
    cookies: tuple[str, ...] = ()
    body_encoding: BodyEncoding = "unknown"
    # only set when body_encoding == "json"
    json_type: Optional[str] = None
    json_fields: tuple[StructFieldDescriptor, ...] = ()


@dataclass(frozen=True)
class HandlerDefinition:
    name: str
    file_path: str
    name_span: Optional[SourceSpan]
    context_param: Optional[str]
    gin_alias: str
    shape: RequestShape = field(default_factory=RequestShape)


@dataclass(frozen=True)
class RouteRegistration:
    method: str  # GET, POST, ... or ANY
    path: str
    handler_name: str
    file_path: str = ""
    span: Optional[SourceSpan] = None


@dataclass(frozen=True)
class LinkedHandler:
    handler: HandlerDefinition
    routes: tuple[RouteRegistration, ...] = ()

    @property
    def name(self) -> str:
        return self.handler.name


@dataclass(frozen=True)
class SourceFile:
    """One unit of scanned text: where it came from and what it says."""

    path: str
    text: str


class GenerationOptions(BaseModel):
    """
    Options for curl synthesis.

    Field aliases match the keys of a `.gurl.json` file:
      {"baseUrl": "...", "defaultHeaders": {"X-Api-Key": "..."}, "useHttpieStyle": false}

    An empty base_url (or the conventional default) means "infer it from the sources".
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    base_url: str = Field(default="", alias="baseUrl")
    default_headers: dict[str, str] = Field(default_factory=dict, alias="defaultHeaders")
    use_httpie_style: bool = Field(default=False, alias="useHttpieStyle")  # reserved
