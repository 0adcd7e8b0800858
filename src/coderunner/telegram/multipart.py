from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from .errors import InvalidFilenameError
from .payload import ExtractedFile, create_id, to_json_body

BOUNDARY_PREFIX = "-" * 10
DEFAULT_EXTENSION = "dat"
DEFAULT_EXTENSIONS = {
    "certificate": "pem",
    "photo": "jpg",
    "thumbnail": "jpg",
    "voice": "ogg",
    "audio": "mp3",
    "animation": "mp4",
    "video": "mp4",
    "video_note": "mp4",
    "sticker": "webp",
}


def create_boundary() -> str:
    return BOUNDARY_PREFIX + create_id(32)


def default_filename(origin: str) -> str:
    return f"{origin}.{DEFAULT_EXTENSIONS.get(origin, DEFAULT_EXTENSION)}"


def resolve_filename(extracted: ExtractedFile) -> str:
    filename = extracted.file.filename or default_filename(extracted.origin)
    if "\r" in filename or "\n" in filename:
        raise InvalidFilenameError(extracted.origin, filename)
    return filename


def _field_value(value: Any) -> str:
    if isinstance(value, (Mapping, list, tuple)):
        return to_json_body(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _field_part(key: str, value: Any) -> bytes:
    return (
        f'content-disposition:form-data;name="{key}"\r\n\r\n{_field_value(value)}'
    ).encode()


def _file_header(file_id: str, filename: str) -> bytes:
    return (
        f'content-disposition:form-data;name="{file_id}";filename={filename}\r\n'
        "content-type:application/octet-stream\r\n\r\n"
    ).encode()


async def encode_multipart(
    payload: Mapping[str, Any],
    files: Iterable[ExtractedFile],
    boundary: str,
) -> AsyncIterator[bytes]:
    """Yield a ``multipart/form-data`` body for an already extracted payload.

    Fields come first in payload order, ``None`` values skipped, followed by
    the files in extraction order. File content is pulled from each source
    only as the consumer asks for the next chunk.
    """
    separator = f"\r\n--{boundary}\r\n".encode("ascii")
    yield f"--{boundary}\r\n".encode("ascii")
    first = True
    for key, value in payload.items():
        if value is None:
            continue
        if not first:
            yield separator
        yield _field_part(key, value)
        first = False
    for extracted in files:
        header = _file_header(extracted.id, resolve_filename(extracted))
        if not first:
            yield separator
        yield header
        async for chunk in extracted.file.chunks():
            yield chunk
        first = False
    yield f"\r\n--{boundary}--\r\n".encode("ascii")
