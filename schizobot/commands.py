"""The bot's commands: parsing and handling of `/start` and `/stats`."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Sequence

from sqlalchemy.engine import Engine

from schizobot.database import DatabaseError, count_messages_by_chat
from schizobot.i18n import I18nLanguage
from schizobot.telegram import Message, TelegramClient

logger = logging.getLogger("schizobot.commands")


class Command(Enum):
    """The commands the bot understands."""

    START = "start"
    STATS = "stats"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def parse(cls, text: Optional[str], bot_username: Optional[str] = None) -> Optional[Command]:
        """Return the command in *text*, or None if it holds none for this bot."""
        if not text or not text.startswith("/"):
            return None
        words = text.split(maxsplit=1)
        head = words[0][1:] if words else ""
        name, mentioned, username = head.partition("@")
        if mentioned and (
            bot_username is None or username.lower() != bot_username.lower()
        ):
            return None
        try:
            return cls(name)
        except ValueError:
            return None


_DESCRIPTIONS = {
    Command.START: "Отправляет приветствие пользователю.",
    Command.STATS: "Показывает статистику бота в этом чате.",
}


def _remainder(value: int, divisor: int) -> int:
    # Remainder with the sign of the dividend.
    result = abs(value) % divisor
    return result if value >= 0 else -result


def pluralize(value: int, forms: Sequence[str]) -> str:
    """Format *value* in bold followed by the fitting plural form of three."""
    if 11 <= _remainder(value, 100) <= 14:
        index = 2
    else:
        last = _remainder(value, 10)
        if last == 1:
            index = 0
        elif 2 <= last <= 4:
            index = 1
        else:
            index = 2
    return f"<b>{value}</b> {forms[index]}"


async def handle_start(
    client: TelegramClient, message: Message, language: I18nLanguage
) -> None:
    """Reply to `/start` with the greeting text."""
    await client.send_message(message.chat.id, language.start_message)


async def handle_stats(
    client: TelegramClient, message: Message, engine: Engine, language: I18nLanguage
) -> None:
    """Reply to `/stats` with the number of messages saved for the chat."""
    try:
        count = count_messages_by_chat(engine, message.chat.id)
    except DatabaseError as exc:
        logger.error("Failed to load messages count: %s", exc)
        return
    value = pluralize(count, language.stats_message.plurals)
    await client.send_message(
        message.chat.id, language.stats_message.base.replace("{value}", value)
    )


async def handle_command(
    client: TelegramClient,
    message: Message,
    command: Command,
    engine: Engine,
    language: I18nLanguage,
) -> None:
    """Run the handler for *command*."""
    if command is Command.START:
        await handle_start(client, message, language)
    elif command is Command.STATS:
        await handle_stats(client, message, engine, language)