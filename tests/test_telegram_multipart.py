from __future__ import annotations

import json

import pytest

from coderunner.telegram import (
    InputFile,
    InvalidFilenameError,
    create_boundary,
    default_filename,
    encode_multipart,
    extract_files,
)

BOUNDARY = "----------testboundary"


async def _encode(payload, boundary: str = BOUNDARY) -> bytes:
    files = extract_files(payload)
    chunks = [chunk async for chunk in encode_multipart(payload, files, boundary)]
    return b"".join(chunks)


def test_create_boundary_format() -> None:
    boundary = create_boundary()
    assert boundary.startswith("-" * 10)
    token = boundary[10:]
    assert len(token) == 32
    assert all(char.isdigit() or char.islower() for char in token)
    assert create_boundary() != boundary


@pytest.mark.parametrize(
    ("origin", "expected"),
    [
        ("certificate", "certificate.pem"),
        ("photo", "photo.jpg"),
        ("thumbnail", "thumbnail.jpg"),
        ("voice", "voice.ogg"),
        ("audio", "audio.mp3"),
        ("animation", "animation.mp4"),
        ("video", "video.mp4"),
        ("video_note", "video_note.mp4"),
        ("sticker", "sticker.webp"),
        ("document", "document.dat"),
    ],
)
def test_default_filename(origin: str, expected: str) -> None:
    assert default_filename(origin) == expected


@pytest.mark.anyio
async def test_encode_multipart_exact_framing() -> None:
    payload = {"chat_id": 42, "photo": InputFile(b"cat")}
    files = extract_files(payload)
    file_id = files[0].id

    body = b"".join(
        [chunk async for chunk in encode_multipart(payload, files, BOUNDARY)]
    )

    expected = (
        f"--{BOUNDARY}\r\n"
        'content-disposition:form-data;name="chat_id"\r\n\r\n42'
        f"\r\n--{BOUNDARY}\r\n"
        f'content-disposition:form-data;name="photo"\r\n\r\nattach://{file_id}'
        f"\r\n--{BOUNDARY}\r\n"
        f'content-disposition:form-data;name="{file_id}";filename=photo.jpg\r\n'
        "content-type:application/octet-stream\r\n\r\n"
        "cat"
        f"\r\n--{BOUNDARY}--\r\n"
    ).encode()
    assert body == expected


@pytest.mark.anyio
async def test_encode_multipart_uses_explicit_filename() -> None:
    body = await _encode({"document": InputFile(b"data", filename="report.txt")})
    assert b";filename=report.txt\r\n" in body
    assert b"document.dat" not in body


@pytest.mark.anyio
async def test_encode_multipart_filename_from_path(tmp_path) -> None:
    path = tmp_path / "main.py"
    path.write_text("print(1)\n", encoding="utf-8")
    body = await _encode({"document": InputFile(path)})
    assert b";filename=main.py\r\n" in body
    assert b"print(1)\n" in body


@pytest.mark.anyio
async def test_encode_multipart_field_values() -> None:
    payload = {
        "chat_id": -100,
        "disable_notification": True,
        "protect_content": False,
        "reply_markup": {"inline_keyboard": [[{"text": "a", "url": None}]]},
        "caption": "héllo",
        "parse_mode": None,
        "document": InputFile(b"x"),
    }
    body = await _encode(payload)

    assert b'name="chat_id"\r\n\r\n-100\r\n' in body
    assert b'name="disable_notification"\r\n\r\ntrue\r\n' in body
    assert b'name="protect_content"\r\n\r\nfalse\r\n' in body
    assert b'name="parse_mode"' not in body
    assert 'name="caption"\r\n\r\nhéllo\r\n'.encode() in body
    marker = b'name="reply_markup"\r\n\r\n'
    start = body.index(marker) + len(marker)
    end = body.index(b"\r\n", start)
    assert json.loads(body[start:end]) == {"inline_keyboard": [[{"text": "a"}]]}


@pytest.mark.anyio
async def test_encode_multipart_ordering_and_counts() -> None:
    payload = {
        "chat_id": 1,
        "media": [
            {"type": "video", "media": InputFile(b"VIDEO")},
            {"type": "photo", "media": InputFile(b"PHOTO")},
        ],
        "caption": None,
        "thumbnail": InputFile(b"THUMB"),
    }
    body = await _encode(payload)

    assert body.count(b"content-disposition:") == 3 + 3
    assert body.count(f"--{BOUNDARY}\r\n".encode()) == 3 + 3
    assert body.endswith(f"\r\n--{BOUNDARY}--\r\n".encode())
    assert body.count(f"--{BOUNDARY}--".encode()) == 1
    assert body.index(b'name="chat_id"') < body.index(b'name="media"')
    assert body.index(b"filename=video.mp4") < body.index(b"VIDEO")
    assert body.index(b"VIDEO") < body.index(b"filename=photo.jpg")
    assert body.index(b"PHOTO") < body.index(b"filename=thumbnail.jpg")


@pytest.mark.anyio
async def test_encode_multipart_streams_file_chunks() -> None:
    source = InputFile(iter([b"ab", b"cd", b"ef"]), filename="data.bin")
    payload = {"document": source}
    files = extract_files(payload)

    chunks = [chunk async for chunk in encode_multipart(payload, files, BOUNDARY)]

    assert b"ab" in chunks
    assert b"cd" in chunks
    assert b"ef" in chunks


@pytest.mark.anyio
async def test_encode_multipart_empty_payload() -> None:
    assert await _encode({}) == f"--{BOUNDARY}\r\n\r\n--{BOUNDARY}--\r\n".encode()


@pytest.mark.anyio
@pytest.mark.parametrize(
    "filename", ["evil\r\nx-injected: 1", "line\nbreak", "cr\r"]
)
async def test_encode_multipart_rejects_line_breaks_in_filename(filename) -> None:
    payload = {"chat_id": 1, "document": InputFile(b"secret", filename=filename)}
    files = extract_files(payload)
    chunks: list[bytes] = []

    with pytest.raises(InvalidFilenameError) as excinfo:
        async for chunk in encode_multipart(payload, files, BOUNDARY):
            chunks.append(chunk)

    body = b"".join(chunks)
    assert b"filename=" not in body
    assert b"secret" not in body
    assert excinfo.value.origin == "document"
    assert excinfo.value.filename == filename
    assert "document" in str(excinfo.value)
