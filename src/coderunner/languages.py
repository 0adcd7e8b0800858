from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Language:
    command: str
    name: str
    version: str


LANGUAGES: tuple[Language, ...] = (
    Language(command="python", name="Python", version="3.10.0"),
    Language(command="dart", name="Dart", version="2.19.6"),
    Language(command="javascript", name="JavaScript", version="1.32.3"),
    Language(command="csharp", name="C#", version="6.12.0"),
    Language(command="java", name="Java", version="15.0.2"),
    Language(command="kotlin", name="Kotlin", version="1.8.20"),
    Language(command="lua", name="Lua", version="5.4.4"),
    Language(command="php", name="PHP", version="8.2.3"),
    Language(command="perl", name="Perl", version="5.36.0"),
    Language(command="ruby", name="Ruby", version="3.0.1"),
    Language(command="rust", name="Rust", version="1.68.2"),
    Language(command="swift", name="Swift", version="5.3.3"),
    Language(command="sqlite3", name="SQLite3", version="3.36.0"),
)

_BY_COMMAND = {language.command: language for language in LANGUAGES}


def get_language(command: str) -> Language | None:
    key = command.strip().lstrip("/").lower()
    if "@" in key:
        key = key.split("@", 1)[0]
    return _BY_COMMAND.get(key)


def language_commands() -> tuple[str, ...]:
    return tuple(language.command for language in LANGUAGES)
