from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import partial
from pathlib import Path
from typing import Any, TypeVar

import anyio
import typer

from . import __version__
from .config import ConfigError, read_raw_toml, resolve_config_path, write_raw_toml
from .languages import LANGUAGES, Language, get_language, language_commands
from .logging import get_logger, setup_logging
from .piston import (
    DEFAULT_PISTON_URL,
    ExecutionResult,
    PistonClient,
    PistonError,
    format_output,
)
from .settings import (
    BotSettings,
    load_settings,
    load_settings_if_exists,
    validate_settings_data,
)
from .telegram import BotClient, InputFile, PayloadError, TelegramError
from .telegram.client import MEDIA_METHODS

logger = get_logger(__name__)

T = TypeVar("T")

_HANDLED_ERRORS = (ConfigError, PistonError, PayloadError, TelegramError)

_UPLOAD_ACTIONS = {
    "audio": "upload_voice",
    "photo": "upload_photo",
    "video": "upload_video",
    "video_note": "upload_video_note",
    "voice": "upload_voice",
}


def _print_version_and_exit() -> None:
    typer.echo(__version__)
    raise typer.Exit()


def _version_callback(value: bool) -> None:
    if value:
        _print_version_and_exit()


def _config_path_display(path: Path) -> str:
    home = Path.home()
    try:
        return f"~/{path.relative_to(home)}"
    except ValueError:
        return str(path)


def _fail(message: str) -> typer.Exit:
    typer.echo(f"error: {message}", err=True)
    return typer.Exit(code=1)


def _run_async(func: Callable[[], Awaitable[T]]) -> T:
    try:
        return anyio.run(func)
    except _HANDLED_ERRORS as exc:
        raise _fail(str(exc)) from exc
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")
        raise typer.Exit(code=130)


def _load_settings() -> BotSettings:
    try:
        settings, config_path = load_settings()
    except ConfigError as exc:
        raise _fail(str(exc)) from exc
    logger.debug("config.loaded", path=str(config_path))
    return settings


def _piston_url() -> str:
    try:
        loaded = load_settings_if_exists()
    except ConfigError as exc:
        logger.warning("config.ignored", error=str(exc))
        return DEFAULT_PISTON_URL
    if loaded is None:
        return DEFAULT_PISTON_URL
    settings, _ = loaded
    return settings.piston_url


def _parse_chat_id(value: str) -> int | str:
    value = value.strip()
    try:
        return int(value)
    except ValueError:
        return value


def _bot_client(settings: BotSettings) -> BotClient:
    return BotClient(
        settings.bot_token,
        api_root=settings.api_root,
        timeout_s=settings.timeout_s,
    )


async def _execute(
    url: str, source: str, language: Language, stdin: str
) -> ExecutionResult:
    async with PistonClient(url) as client:
        return await client.execute(source, language=language, stdin=stdin)


async def _send_message(
    settings: BotSettings, chat_id: int | str, text: str
) -> dict[str, Any]:
    async with _bot_client(settings) as bot:
        return await bot.send_message(chat_id, text)


async def _send_file(
    settings: BotSettings,
    chat_id: int | str,
    kind: str,
    path: Path,
    caption: str | None,
) -> dict[str, Any]:
    async with _bot_client(settings) as bot:
        action = _UPLOAD_ACTIONS.get(kind, "upload_document")
        await bot.send_chat_action(chat_id, action)
        return await bot.send_media(kind, chat_id, InputFile(path), caption=caption)


def init(
    token: str | None = typer.Option(
        None,
        "--token",
        help="Telegram bot token (prompted for when omitted).",
    ),
) -> None:
    """Write the bot token to the coderunner config file."""
    config_path = resolve_config_path()
    display = _config_path_display(config_path)
    config: dict[str, Any] = {}
    try:
        if config_path.exists():
            config = read_raw_toml(config_path)
            if config.get("bot_token"):
                overwrite = typer.confirm(
                    f"config at {display} already has a bot token, overwrite?",
                    default=False,
                )
                if not overwrite:
                    raise typer.Exit(code=1)
        if token is None:
            token = typer.prompt("bot token", hide_input=True)
        token = token.strip()
        if not token:
            raise _fail("bot token cannot be empty")
        config["bot_token"] = token
        validate_settings_data(config, config_path=config_path)
        write_raw_toml(config, config_path)
    except ConfigError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"saved config to {display}")


def languages_cmd() -> None:
    """List the languages code can be run in."""
    for language in LANGUAGES:
        typer.echo(f"{language.name} - /{language.command} ({language.version})")


def run_cmd(
    source: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="Source file to execute.",
    ),
    language: str = typer.Option(
        ...,
        "--language",
        "-l",
        help="Language to run the source as, e.g. python.",
    ),
    stdin: str = typer.Option("", "--stdin", help="Text passed to the program."),
) -> None:
    """Execute a source file on the code runner and print its output."""
    resolved = get_language(language)
    if resolved is None:
        available = ", ".join(language_commands())
        raise _fail(f"unknown language {language!r}. Available: {available}.")
    try:
        code = source.read_text(encoding="utf-8").strip()
    except UnicodeDecodeError as exc:
        raise _fail(f"{source} is not valid UTF-8 text") from exc
    except OSError as exc:
        raise _fail(f"failed to read {source}: {exc}") from exc
    result = _run_async(partial(_execute, _piston_url(), code, resolved, stdin))
    typer.echo(format_output(result))
    if not result.ok:
        raise typer.Exit(code=1)


def send_message_cmd(
    chat_id: str = typer.Argument(..., help="Target chat id or @username."),
    text: str = typer.Argument(..., help="Message text."),
) -> None:
    """Send a text message through the Bot API."""
    settings = _load_settings()
    sent = _run_async(partial(_send_message, settings, _parse_chat_id(chat_id), text))
    typer.echo(f"sent message {sent.get('message_id')}")


def send_file_cmd(
    chat_id: str = typer.Argument(..., help="Target chat id or @username."),
    path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File to upload.",
    ),
    kind: str = typer.Option(
        "document",
        "--kind",
        "-k",
        help=f"Upload kind: {', '.join(sorted(MEDIA_METHODS))}.",
    ),
    caption: str | None = typer.Option(None, "--caption", help="Caption text."),
) -> None:
    """Upload a file through the Bot API, streamed from disk."""
    if kind not in MEDIA_METHODS:
        available = ", ".join(sorted(MEDIA_METHODS))
        raise _fail(f"unknown kind {kind!r}. Available: {available}.")
    settings = _load_settings()
    sent = _run_async(
        partial(_send_file, settings, _parse_chat_id(chat_id), kind, path, caption)
    )
    typer.echo(f"sent {kind} {sent.get('message_id')}")


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Run code on Piston and talk to the Telegram Bot API.",
)


app.command(name="init")(init)
app.command(name="languages")(languages_cmd)
app.command(name="run")(run_cmd)
app.command(name="send-message")(send_message_cmd)
app.command(name="send-file")(send_file_cmd)


@app.callback()
def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log Bot API and code runner requests.",
    ),
) -> None:
    """coderunner CLI."""
    setup_logging(debug=debug)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
