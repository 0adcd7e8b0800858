from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any

import httpx

from ..logging import get_logger
from .errors import (
    TelegramApiError,
    TelegramError,
    TelegramNetworkError,
    TelegramUploadError,
)
from .files import InputFile
from .request import build_request

logger = get_logger(__name__)

DEFAULT_API_ROOT = "https://api.telegram.org"

MEDIA_METHODS = {
    "animation": "sendAnimation",
    "audio": "sendAudio",
    "document": "sendDocument",
    "photo": "sendPhoto",
    "sticker": "sendSticker",
    "video": "sendVideo",
    "video_note": "sendVideoNote",
    "voice": "sendVoice",
}


class BotClient:
    """Async Telegram Bot API client.

    Payloads without files are posted as JSON. Payloads holding ``InputFile``
    values are streamed as ``multipart/form-data``. Payload dicts are
    rewritten by the call and should not be reused.
    """

    def __init__(
        self,
        token: str,
        *,
        api_root: str = DEFAULT_API_ROOT,
        timeout_s: float = 120,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{api_root.rstrip('/')}/bot{token}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

    async def __aenter__(self) -> BotClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        request = build_request(
            payload if payload is not None else {},
            on_error=partial(_log_upload_error, method),
        )
        logger.debug(
            "telegram.request",
            method=method,
            multipart=request.is_multipart,
            files=len(request.files),
        )
        try:
            response = await self._client.post(
                f"{self._base}/{method}",
                content=request.content,
                headers=request.headers,
            )
        except httpx.HTTPError as exc:
            upload_error = request.stream_error
            if upload_error is not None:
                raise TelegramUploadError(
                    f"Telegram {method} upload failed: {upload_error}"
                ) from upload_error
            raise TelegramNetworkError(
                f"Telegram {method} request failed: {exc.__class__.__name__}"
            ) from exc
        upload_error = request.stream_error
        if upload_error is not None:
            raise TelegramUploadError(
                f"Telegram {method} upload failed: {upload_error}"
            ) from upload_error
        return _parse_response(method, response)

    async def get_me(self) -> dict[str, Any]:
        return await self.call("getMe")

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        *,
        reply_to_message_id: int | None = None,
        disable_notification: bool | None = None,
        parse_mode: str | None = None,
        entities: Sequence[Mapping[str, Any]] | None = None,
        reply_markup: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self.call(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "reply_to_message_id": reply_to_message_id,
                "disable_notification": disable_notification,
                "parse_mode": parse_mode,
                "entities": list(entities) if entities is not None else None,
                "reply_markup": (
                    dict(reply_markup) if reply_markup is not None else None
                ),
            },
        )

    async def send_chat_action(
        self, chat_id: int | str, action: str = "typing"
    ) -> bool:
        return bool(
            await self.call("sendChatAction", {"chat_id": chat_id, "action": action})
        )

    async def send_media(
        self,
        kind: str,
        chat_id: int | str,
        media: InputFile | str,
        *,
        caption: str | None = None,
        reply_to_message_id: int | None = None,
        thumbnail: InputFile | None = None,
    ) -> dict[str, Any]:
        method = MEDIA_METHODS.get(kind)
        if method is None:
            available = ", ".join(sorted(MEDIA_METHODS))
            raise ValueError(f"Unknown media kind {kind!r}. Available: {available}.")
        return await self.call(
            method,
            {
                "chat_id": chat_id,
                kind: media,
                "caption": caption,
                "reply_to_message_id": reply_to_message_id,
                "thumbnail": thumbnail,
            },
        )

    async def send_document(
        self,
        chat_id: int | str,
        document: InputFile | str,
        *,
        caption: str | None = None,
        reply_to_message_id: int | None = None,
    ) -> dict[str, Any]:
        return await self.send_media(
            "document",
            chat_id,
            document,
            caption=caption,
            reply_to_message_id=reply_to_message_id,
        )

    async def send_photo(
        self,
        chat_id: int | str,
        photo: InputFile | str,
        *,
        caption: str | None = None,
        reply_to_message_id: int | None = None,
    ) -> dict[str, Any]:
        return await self.send_media(
            "photo",
            chat_id,
            photo,
            caption=caption,
            reply_to_message_id=reply_to_message_id,
        )

    async def send_media_group(
        self,
        chat_id: int | str,
        media: Sequence[Mapping[str, Any]],
        *,
        reply_to_message_id: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.call(
            "sendMediaGroup",
            {
                "chat_id": chat_id,
                "media": [dict(item) for item in media],
                "reply_to_message_id": reply_to_message_id,
            },
        )


def _log_upload_error(method: str, exc: Exception) -> None:
    logger.warning(
        "telegram.upload_failed",
        method=method,
        error=str(exc),
        error_type=exc.__class__.__name__,
    )


def _parse_response(method: str, response: httpx.Response) -> Any:
    try:
        data = response.json()
    except ValueError as exc:
        raise TelegramError(
            f"Telegram {method} returned invalid JSON (HTTP {response.status_code})"
        ) from exc
    if not isinstance(data, dict):
        raise TelegramError(f"Telegram {method} returned an unexpected payload")
    if not data.get("ok"):
        parameters = data.get("parameters")
        retry_after = (
            parameters.get("retry_after") if isinstance(parameters, dict) else None
        )
        error_code = data.get("error_code")
        raise TelegramApiError(
            method,
            error_code if isinstance(error_code, int) else response.status_code,
            str(data.get("description") or "unknown error"),
            retry_after=retry_after if isinstance(retry_after, int) else None,
        )
    return data.get("result")
