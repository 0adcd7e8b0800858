"""Payload inspection and rewriting for Bot API requests."""

from __future__ import annotations

import json
import secrets
import string
from collections.abc import Mapping, MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any

from .files import InputFile

ATTACH_PREFIX = "attach://"
_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True, slots=True)
class ExtractedFile:
    id: str
    origin: str
    file: InputFile

    @property
    def reference(self) -> str:
        return f"{ATTACH_PREFIX}{self.id}"


def create_id(length: int = 16) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def needs_multipart(payload: Any) -> bool:
    if isinstance(payload, InputFile):
        return True
    if isinstance(payload, Mapping):
        return any(needs_multipart(value) for value in payload.values())
    if isinstance(payload, (list, tuple)):
        return any(needs_multipart(item) for item in payload)
    return False


def _drop_none(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            key: _drop_none(item) for key, item in value.items() if item is not None
        }
    if isinstance(value, (list, tuple)):
        return [_drop_none(item) for item in value]
    return value


def to_json_body(payload: Any) -> str:
    """Serialize ``payload`` to compact JSON, omitting ``None`` mapping fields.

    ``None`` items inside lists are kept and encoded as ``null``.
    """
    return json.dumps(_drop_none(payload), separators=(",", ":"), ensure_ascii=False)


def _origin(container: Mapping[str, Any], key: str) -> str:
    kind = container.get("type")
    if key == "media" and isinstance(kind, str):
        return kind
    return key


def _extract_value(
    container: MutableMapping[str, Any] | MutableSequence[Any],
    slot: Any,
    value: Any,
    origin: str,
) -> list[ExtractedFile]:
    if isinstance(value, tuple):
        value = list(value)
        container[slot] = value
    elif isinstance(value, Mapping) and not isinstance(value, MutableMapping):
        value = dict(value)
        container[slot] = value
    if isinstance(value, list):
        files: list[ExtractedFile] = []
        for index, item in enumerate(value):
            files.extend(_extract_value(value, index, item, origin))
        return files
    if isinstance(value, InputFile):
        extracted = ExtractedFile(id=create_id(), origin=origin, file=value)
        container[slot] = extracted.reference
        return [extracted]
    return extract_files(value)


def extract_files(payload: Any) -> list[ExtractedFile]:
    """Replace every ``InputFile`` in ``payload`` with an ``attach://`` reference.

    The payload is rewritten in place and the extracted files are returned in
    the order they were found. A bare file at the top level is not extracted.
    """
    if not isinstance(payload, MutableMapping):
        return []
    files: list[ExtractedFile] = []
    for key, value in list(payload.items()):
        files.extend(_extract_value(payload, key, value, _origin(payload, key)))
    return files
