from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Type

from jsonschema import ValidationError, validate

from ticket_agent.config import PACKAGE_DIR
from ticket_agent.errors import ParseError
from ticket_agent.utils.io import read_text

SCHEMAS_DIR = PACKAGE_DIR / "schemas"

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", flags=re.DOTALL | re.IGNORECASE)


def _snippet(raw_text: str, limit: int = 200) -> str:
    snippet = raw_text.strip().replace("\n", " ")
    return (snippet[:limit] + "...") if len(snippet) > limit else snippet


def _iter_json_candidates(text: str) -> list[str]:
    candidates = [block.strip() for block in _FENCE_PATTERN.findall(text)]
    candidates.append(text)
    for match in re.finditer(r"[\[{]", text):
        candidates.append(text[match.start():])
    return candidates


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def extract_json(raw_text: str) -> Any:
    """Return the first JSON value found in a model response.

    Tries the whole text, then fenced blocks (optionally tagged ``json``), then
    the first decodable object or array embedded in prose.
    """
    parsed = _try_parse(raw_text)
    if parsed is not None:
        return parsed

    candidates = _iter_json_candidates(raw_text)
    for candidate in candidates:
        parsed = _try_parse(candidate)
        if parsed is not None:
            return parsed

    decoder = json.JSONDecoder()
    for candidate in candidates:
        try:
            parsed, _ = decoder.raw_decode(candidate.lstrip())
            return parsed
        except json.JSONDecodeError:
            continue

    raise ValueError(f"No JSON object found in response. Snippet: {_snippet(raw_text)}")


@lru_cache(maxsize=None)
def load_schema(name: str, schemas_dir: Path = SCHEMAS_DIR) -> dict:
    return json.loads(read_text(schemas_dir / name))


def parse_payload(
    raw_text: str,
    schema_name: str,
    label: str,
    error_cls: Type[ParseError] = ParseError,
) -> Any:
    try:
        parsed = extract_json(raw_text)
    except ValueError as exc:
        raise error_cls(f"Failed to parse {label}: {exc}") from exc
    try:
        validate(instance=parsed, schema=load_schema(schema_name))
    except ValidationError as exc:
        location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
        raise error_cls(f"Failed to parse {label}: {exc.message} at {location}") from exc
    return parsed
