"""Localised text used by the bot, loaded from a JSON language file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger("schizobot.i18n")

DEFAULT_LANGUAGE_PATH = "language.json"


def _require_str(data: Mapping[str, Any], key: str) -> str:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None
    if not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _require_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    try:
        value = data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None
    if not isinstance(value, Mapping):
        raise ValueError(f"field `{key}` must be an object")
    return value


@dataclass(frozen=True)
class LanguageDice:
    """Texts for the dice interaction."""

    received: str
    win: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LanguageDice:
        return cls(received=_require_str(data, "received"), win=_require_str(data, "win"))


@dataclass(frozen=True)
class StatsMessage:
    """Texts for the `/stats` reply: a base template and counter plurals."""

    base: str
    plurals: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StatsMessage:
        base = _require_str(data, "base")
        try:
            plurals = data["plurals"]
        except KeyError:
            raise ValueError("missing field `plurals`") from None
        if not isinstance(plurals, list) or not all(isinstance(p, str) for p in plurals):
            raise ValueError("field `plurals` must be a list of strings")
        return cls(base=base, plurals=list(plurals))


@dataclass(frozen=True)
class I18nLanguage:
    """All localised texts of the bot."""

    start_message: str
    greeting_message: str
    dice: LanguageDice
    stats_message: StatsMessage

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> I18nLanguage:
        """Build a language from decoded JSON, raising ValueError on bad data."""
        if not isinstance(data, Mapping):
            raise ValueError("language data must be an object")
        return cls(
            start_message=_require_str(data, "start_message"),
            greeting_message=_require_str(data, "greeting_message"),
            dice=LanguageDice.from_dict(_require_mapping(data, "dice")),
            stats_message=StatsMessage.from_dict(_require_mapping(data, "stats_message")),
        )


def load_language(path: str | os.PathLike[str] | None = None) -> I18nLanguage:
    """Load a language file from *path*, `LANGUAGE_PATH` or `language.json`.

    Raises OSError when the file cannot be read and ValueError when it does not
    hold a valid language.
    """
    if path is None:
        path = os.environ.get("LANGUAGE_PATH", DEFAULT_LANGUAGE_PATH)
    logger.info("Loading language from %s", path)

    raw = Path(path).read_bytes()
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError("failed to parse JSON") from exc
    return I18nLanguage.from_dict(data)