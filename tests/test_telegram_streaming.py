from __future__ import annotations

from collections.abc import AsyncIterator

import pytest

from coderunner.telegram import BodyStream, StreamState


class _Source:
    def __init__(self, count: int, *, fail_at: int | None = None) -> None:
        self.count = count
        self.fail_at = fail_at
        self.pulls = 0
        self.closed = False

    async def chunks(self) -> AsyncIterator[bytes]:
        try:
            for index in range(self.count):
                self.pulls += 1
                if index == self.fail_at:
                    raise OSError("disk went away")
                yield f"chunk-{index};".encode()
        finally:
            self.closed = True


@pytest.mark.anyio
async def test_body_stream_forwards_all_chunks() -> None:
    source = _Source(3)
    stream = BodyStream(source.chunks())
    assert stream.state is StreamState.NOT_STARTED

    chunks = [chunk async for chunk in stream]

    assert chunks == [b"chunk-0;", b"chunk-1;", b"chunk-2;"]
    assert stream.state is StreamState.COMPLETED
    assert stream.done
    assert stream.error is None
    assert stream.bytes_sent == sum(len(chunk) for chunk in chunks)


@pytest.mark.anyio
async def test_body_stream_routes_errors_to_callback() -> None:
    source = _Source(5, fail_at=2)
    errors: list[Exception] = []
    stream = BodyStream(source.chunks(), on_error=errors.append)

    chunks = [chunk async for chunk in stream]

    assert chunks == [b"chunk-0;", b"chunk-1;"]
    assert stream.state is StreamState.FAILED
    assert isinstance(stream.error, OSError)
    assert errors == [stream.error]
    assert source.closed


@pytest.mark.anyio
async def test_body_stream_error_without_callback_still_ends_quietly() -> None:
    stream = BodyStream(_Source(2, fail_at=0).chunks())
    assert [chunk async for chunk in stream] == []
    assert stream.state is StreamState.FAILED


@pytest.mark.anyio
async def test_body_stream_cancel_stops_pulling() -> None:
    source = _Source(1000)
    stream = BodyStream(source.chunks())
    iterator = aiter(stream)

    received = [await anext(iterator) for _ in range(3)]
    await iterator.aclose()

    assert len(received) == 3
    assert source.pulls <= 4
    assert source.closed
    assert stream.state is StreamState.CANCELLED


@pytest.mark.anyio
async def test_body_stream_break_marks_cancelled() -> None:
    source = _Source(10)
    stream = BodyStream(source.chunks())
    iterator = aiter(stream)
    async for _chunk in iterator:
        break
    await iterator.aclose()

    assert stream.state is StreamState.CANCELLED
    assert source.pulls == 1


@pytest.mark.anyio
async def test_body_stream_is_single_use() -> None:
    stream = BodyStream(_Source(1).chunks())
    assert [chunk async for chunk in stream] == [b"chunk-0;"]
    with pytest.raises(RuntimeError, match="once"):
        aiter(stream)


@pytest.mark.anyio
async def test_body_stream_contains_failing_callback() -> None:
    def on_error(_exc: Exception) -> None:
        raise RuntimeError("callback broke")

    stream = BodyStream(_Source(3, fail_at=1).chunks(), on_error=on_error)

    chunks = [chunk async for chunk in stream]

    assert chunks == [b"chunk-0;"]
    assert stream.state is StreamState.FAILED
    assert isinstance(stream.error, OSError)
