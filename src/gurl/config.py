from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

from pydantic import ValidationError

from gurl.domain.models import DEFAULT_BASE_URL, GenerationOptions, SourceFile
from gurl.graph.linker import infer_base_url

CONFIG_FILENAME = ".gurl.json"


class ConfigError(ValueError):
    """Configuration that can't be used as given (bad file, bad header spec)."""


def parse_header(spec: str) -> tuple[str, str]:
    """'X-Api-Key: abc' -> ('X-Api-Key', 'abc')"""
    name, sep, value = spec.partition(":")
    name = name.strip()
    if not sep or not name:
        raise ConfigError(f"Header must look like 'Name: value', got {spec!r}")
    return name, value.strip()


def load_options(
    repo_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
    base_url: Optional[str] = None,
    headers: Iterable[str] = (),
) -> GenerationOptions:
    """
    Build GenerationOptions from, lowest precedence first:
      defaults -> config file (explicit path, else <repo>/.gurl.json if present) -> arguments
    """
    options = GenerationOptions()

    path = config_path
    if path is None and repo_path is not None:
        candidate = repo_path / CONFIG_FILENAME
        if candidate.is_file():
            path = candidate

    if path is not None:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        try:
            options = GenerationOptions.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid config file {path}: {e}") from e

    updates: dict[str, object] = {}
    if base_url is not None:
        updates["base_url"] = base_url
    extra = [parse_header(h) for h in headers]
    if extra:
        merged = dict(options.default_headers)
        merged.update(extra)
        updates["default_headers"] = merged
    if updates:
        options = options.model_copy(update=updates)
    return options


def resolve_base_url(options: GenerationOptions, sources: Sequence[SourceFile]) -> GenerationOptions:
    """
    Fill in base_url when it is unset (or left at the conventional default)
    using what the sources say; otherwise keep what the user configured.
    """
    if options.base_url and options.base_url != DEFAULT_BASE_URL:
        return options
    inferred = infer_base_url(sources)
    return options.model_copy(update={"base_url": inferred or DEFAULT_BASE_URL})
