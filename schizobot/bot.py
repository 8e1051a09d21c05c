"""Starting the bot: configuration, long polling and the command-line entry."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv
from sqlalchemy.engine import Engine

from schizobot.database import DatabaseError, create_schema, init_engine
from schizobot.handlers import route_message
from schizobot.i18n import I18nLanguage, load_language
from schizobot.telegram import Message, TelegramClient, TelegramError

logger = logging.getLogger("schizobot.bot")

VERSION = "0.1.0"
RETRY_DELAY = 1.0


async def init_bot(
    engine: Engine, language: I18nLanguage, token: Optional[str] = None
) -> None:
    """Create a client for *token* or `TELEGRAM_TOKEN` and poll until stopped."""
    if token is None:
        token = os.environ.get("TELEGRAM_TOKEN")
    if not token:
        raise ValueError("Telegram token isn't set")
    async with TelegramClient(token) as client:
        await run_polling(client, engine, language)


async def _process(
    client: TelegramClient,
    update: dict[str, Any],
    engine: Engine,
    language: I18nLanguage,
    bot_username: Optional[str],
) -> None:
    try:
        data = update.get("message")
        if data is None:
            return
        message = Message.from_dict(data)
        await route_message(client, message, engine, language, bot_username)
    except Exception:
        logger.exception("Failed to handle update %s", update.get("update_id"))


async def run_polling(
    client: TelegramClient, engine: Engine, language: I18nLanguage
) -> None:
    """Fetch updates and hand each message to the handlers until cancelled."""
    me = await client.get_me()
    bot_username = me.username
    offset: Optional[int] = None
    tasks: set[asyncio.Task[None]] = set()

    try:
        while True:
            try:
                updates = await client.get_updates(offset)
            except TelegramError as exc:
                logger.error("Failed to fetch updates: %s", exc)
                await asyncio.sleep(RETRY_DELAY)
                continue
            for update in updates:
                offset = int(update["update_id"]) + 1
                task = asyncio.ensure_future(
                    _process(client, update, engine, language, bot_username)
                )
                tasks.add(task)
                task.add_done_callback(tasks.discard)
    finally:
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


def main(argv: Optional[list[str]] = None) -> int:
    """Run the bot; return the process exit status."""
    parser = argparse.ArgumentParser(prog="schizobot", description="Run the chat bot.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.parse_args(argv)

    load_dotenv(find_dotenv(usecwd=True))
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting bot, v%s", VERSION)

    try:
        language = load_language()
        engine = init_engine()
        create_schema(engine)
        asyncio.run(init_bot(engine, language))
    except KeyboardInterrupt:
        return 0
    except (OSError, ValueError, DatabaseError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())