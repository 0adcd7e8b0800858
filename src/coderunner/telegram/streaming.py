from __future__ import annotations

import enum
from collections.abc import AsyncIterator, Callable

import anyio

from ..logging import get_logger

logger = get_logger(__name__)

ErrorCallback = Callable[[Exception], None]


class StreamState(enum.Enum):
    NOT_STARTED = "not_started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BodyStream:
    """Request body that forwards chunks from a lazy producer.

    A producer error ends the stream early instead of propagating to the HTTP
    client. The error is kept on ``error`` and handed to ``on_error``. When
    the consumer stops early the producer is closed without another pull.
    """

    __slots__ = ("_chunks", "_on_error", "state", "error", "bytes_sent")

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._chunks = chunks
        self._on_error = on_error
        self.state = StreamState.NOT_STARTED
        self.error: Exception | None = None
        self.bytes_sent = 0

    def __repr__(self) -> str:
        return f"BodyStream(state={self.state.value}, bytes_sent={self.bytes_sent})"

    @property
    def done(self) -> bool:
        return self.state in (
            StreamState.COMPLETED,
            StreamState.FAILED,
            StreamState.CANCELLED,
        )

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self.state is not StreamState.NOT_STARTED:
            raise RuntimeError("BodyStream can only be consumed once")
        self.state = StreamState.STREAMING
        return self._produce()

    async def _produce(self) -> AsyncIterator[bytes]:
        chunks = self._chunks
        try:
            while True:
                try:
                    chunk = await anext(chunks)
                except StopAsyncIteration:
                    self.state = StreamState.COMPLETED
                    return
                except Exception as exc:
                    self._fail(exc)
                    return
                self.bytes_sent += len(chunk)
                yield chunk
        finally:
            if self.state is StreamState.STREAMING:
                self.state = StreamState.CANCELLED
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                with anyio.CancelScope(shield=True):
                    await aclose()

    def _fail(self, exc: Exception) -> None:
        self.state = StreamState.FAILED
        self.error = exc
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception(
                "telegram.upload_callback_failed",
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
