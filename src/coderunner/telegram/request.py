from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any

from .errors import PayloadError
from .multipart import create_boundary, encode_multipart, resolve_filename
from .payload import ExtractedFile, extract_files, needs_multipart, to_json_body
from .streaming import BodyStream, ErrorCallback

JSON_CONTENT_TYPE = "application/json"
MULTIPART_CONTENT_TYPE = "multipart/form-data"


@dataclass(frozen=True, slots=True)
class RequestBody:
    headers: dict[str, str]
    content: str | BodyStream
    files: tuple[ExtractedFile, ...] = ()

    @property
    def stream(self) -> BodyStream | None:
        return self.content if isinstance(self.content, BodyStream) else None

    @property
    def is_multipart(self) -> bool:
        return self.stream is not None

    @property
    def stream_error(self) -> Exception | None:
        stream = self.stream
        return stream.error if stream is not None else None


def json_headers() -> dict[str, str]:
    return {"content-type": JSON_CONTENT_TYPE, "connection": "keep-alive"}


def multipart_headers(boundary: str) -> dict[str, str]:
    return {
        "content-type": f"{MULTIPART_CONTENT_TYPE}; boundary={boundary}",
        "connection": "keep-alive",
    }


def build_request(
    payload: MutableMapping[str, Any],
    *,
    on_error: ErrorCallback | None = None,
) -> RequestBody:
    """Encode ``payload`` as JSON, or as a streamed multipart body if it holds files.

    On the multipart path the payload is rewritten in place and every filename
    is checked before any file is read.
    """
    if not needs_multipart(payload):
        return RequestBody(headers=json_headers(), content=to_json_body(payload))
    if not isinstance(payload, MutableMapping):
        raise PayloadError(
            f"Multipart payload must be a mapping, got {type(payload).__name__}"
        )
    boundary = create_boundary()
    files = extract_files(payload)
    for extracted in files:
        resolve_filename(extracted)
    stream = BodyStream(encode_multipart(payload, files, boundary), on_error=on_error)
    return RequestBody(
        headers=multipart_headers(boundary),
        content=stream,
        files=tuple(files),
    )
