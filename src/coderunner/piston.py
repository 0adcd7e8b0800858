from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from .languages import Language
from .logging import get_logger
from .telegram.request import build_request

logger = get_logger(__name__)

DEFAULT_PISTON_URL = "https://emkc.org/api/v2/piston/execute"


class PistonError(Exception):
    """Raised when the code-execution service rejects or fails a run."""


@dataclass(frozen=True, slots=True)
class StageResult:
    stdout: str = ""
    stderr: str = ""
    output: str = ""
    code: int | None = None
    signal: str | None = None

    @classmethod
    def from_payload(cls, raw: Any) -> StageResult | None:
        if not isinstance(raw, dict):
            return None
        code = raw.get("code")
        signal = raw.get("signal")
        return cls(
            stdout=str(raw.get("stdout") or ""),
            stderr=str(raw.get("stderr") or ""),
            output=str(raw.get("output") or ""),
            code=code if isinstance(code, int) else None,
            signal=signal if isinstance(signal, str) else None,
        )


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    language: str
    version: str
    run: StageResult
    compile: StageResult | None = None

    @property
    def output(self) -> str:
        return self.run.output

    @property
    def ok(self) -> bool:
        if self.compile is not None and self.compile.code not in (None, 0):
            return False
        return self.run.code in (None, 0)


def format_output(result: ExecutionResult) -> str:
    if result.compile is not None and result.compile.code not in (None, 0):
        return result.compile.output or f"Error: compile exited {result.compile.code}"
    return result.output or "(no output)"


class PistonClient:
    def __init__(
        self,
        url: str = DEFAULT_PISTON_URL,
        *,
        timeout_s: float = 60,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def __aenter__(self) -> PistonClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def execute(
        self,
        source: str,
        *,
        language: Language,
        stdin: str = "",
        args: Sequence[str] = (),
    ) -> ExecutionResult:
        request = build_request(
            {
                "language": language.command,
                "version": language.version,
                "files": [{"content": source}],
                "args": list(args),
                "stdin": stdin,
                "log": 0,
            }
        )
        logger.debug(
            "piston.execute",
            language=language.command,
            version=language.version,
            source_len=len(source),
        )
        try:
            response = await self._client.post(
                self._url, content=request.content, headers=request.headers
            )
        except httpx.HTTPError as exc:
            raise PistonError(f"Request failed: {exc}") from exc
        if response.is_error:
            detail = _error_message(response)
            message = f"Request failed with status code {response.status_code}"
            raise PistonError(f"{message}: {detail}" if detail else message)
        try:
            data = response.json()
        except ValueError as exc:
            raise PistonError("Malformed response from code runner") from exc
        if not isinstance(data, dict):
            raise PistonError("Malformed response from code runner")
        run = StageResult.from_payload(data.get("run"))
        if run is None:
            raise PistonError("Malformed response from code runner: missing `run`")
        return ExecutionResult(
            language=str(data.get("language") or language.command),
            version=str(data.get("version") or language.version),
            run=run,
            compile=StageResult.from_payload(data.get("compile")),
        )


def _error_message(response: httpx.Response) -> str | None:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
    return None
