"""Handlers for incoming messages: commands, text, dice, greetings, images, stickers."""

from __future__ import annotations

import asyncio
import logging
import os
import random
from typing import Optional

from sqlalchemy.engine import Engine

from schizobot.commands import Command, handle_command
from schizobot.database import (
    DatabaseError,
    create_image,
    create_message,
    create_sticker,
    get_random_messages_content,
    get_random_sticker_id,
)
from schizobot.i18n import I18nLanguage
from schizobot.markov import Chain
from schizobot.telegram import Message, TelegramClient, TelegramError

logger = logging.getLogger("schizobot.handlers")

# Probability in percents that the bot answers a dice with its own.
DICE_PERCENT_PROBABILITY = 30.0
# Pause before announcing a dice win, in seconds.
DICE_WIN_DELAY = 2.0

# Messages needed before the generator is used.
MINIMUM_MESSAGES_SIZE = 50
# Order of the Markov chain built from a chat's messages.
MARKOV_MESSAGES_ORDER = 2
# Bounds of the number of words taken into a generated reply.
SENTENCES_RANGE = range(5, 30)
# Probability in percents that the bot answers a text message.
MESSAGE_PERCENT_PROBABILITY = 5.0
# Share of answers that are stickers rather than generated text.
STICKER_INTERACTION = 0.30

DEFAULT_IMAGES_PATH = "images"

_RNG = random.Random()


def _chance(rng: random.Random, percent: float) -> bool:
    return rng.random() < percent / 100.0


async def dice_handler(
    client: TelegramClient,
    message: Message,
    language: I18nLanguage,
    rng: Optional[random.Random] = None,
) -> None:
    """Sometimes answer a dice with a dice of the same kind and boast of a win."""
    dice = message.dice
    if dice is None:
        return
    rng = rng if rng is not None else _RNG
    if not _chance(rng, DICE_PERCENT_PROBABILITY):
        return

    received = await client.send_message(
        message.chat.id, language.dice.received, reply_to=message.message_id
    )
    own = await client.send_dice(
        message.chat.id, emoji=dice.emoji, reply_to=received.message_id
    )
    if own.dice is not None and own.dice.value > dice.value:
        await asyncio.sleep(DICE_WIN_DELAY)
        text = language.dice.win.replace("{mine}", str(own.dice.value)).replace(
            "{yours}", str(dice.value)
        )
        await client.send_message(message.chat.id, text, reply_to=message.message_id)


async def greeting_handler(
    client: TelegramClient, message: Message, language: I18nLanguage
) -> None:
    """Greet the chat when the bot itself is among the new members."""
    members = message.new_chat_members
    if not members:
        return
    me = await client.get_me()
    if not any(member.id == me.id for member in members):
        return
    await client.send_message(message.chat.id, language.greeting_message)


async def images_handler(
    client: TelegramClient,
    message: Message,
    engine: Engine,
    images_path: Optional[str] = None,
) -> None:
    """Download the largest size of a photo and record it in the database."""
    if not message.photo:
        return
    largest = message.photo[-1]

    try:
        file_info = await client.get_file(largest.file_id)
    except TelegramError as exc:
        logger.error("Failed to get file info for file_id %s: %s", largest.file_id, exc)
        return

    if images_path is None:
        images_path = os.environ.get("IMAGES_PATH", DEFAULT_IMAGES_PATH)
    ext = file_info.file_path.rsplit(".", 1)[-1] or "jpg"
    filename = f"{images_path}/{largest.file_id}.{ext}"

    try:
        handle = open(filename, "wb")
    except OSError as exc:
        logger.error("Unable to create a file %s: %s", filename, exc)
        return

    with handle:
        try:
            await client.download_file(file_info.file_path, handle)
        except TelegramError as exc:
            logger.error("Failed to download file %s: %s", file_info.file_id, exc)
            return
    logger.info("Saved image from %s: %s", message.chat.id, filename)

    try:
        create_image(engine, message.chat.id, largest.file_id)
    except DatabaseError as exc:
        logger.error("Failed to save the image %s: %s", filename, exc)


async def save_message(message: Message, engine: Engine) -> None:
    """Store a text message with its author for later generation."""
    if message.text is None or message.from_user is None:
        return
    chat_id = message.chat.id
    try:
        create_message(engine, chat_id, message.text, message.from_user.id)
    except DatabaseError as exc:
        logger.error("Failed to save the message from %s: %s", chat_id, exc)


async def try_answer(
    client: TelegramClient,
    message: Message,
    engine: Engine,
    rng: Optional[random.Random] = None,
) -> None:
    """Now and then answer with a saved sticker or a generated text."""
    rng = rng if rng is not None else _RNG
    if not _chance(rng, MESSAGE_PERCENT_PROBABILITY):
        return

    chat_id = message.chat.id
    if rng.random() <= STICKER_INTERACTION:
        try:
            sticker_id = get_random_sticker_id(engine, chat_id)
        except DatabaseError as exc:
            logger.error("Failed to retrieve a random sticker: %s", exc)
            return
        await client.send_sticker(chat_id, sticker_id)
        return

    try:
        messages = get_random_messages_content(engine, chat_id)
    except DatabaseError as exc:
        logger.error("Failed to retrieve messages for a generator: %s", exc)
        return
    if len(messages) <= MINIMUM_MESSAGES_SIZE:
        return

    chain: Chain[str] = Chain(MARKOV_MESSAGES_ORDER, rng)
    chain.feed(messages)
    words = chain.generate_str().split()
    count = rng.randrange(SENTENCES_RANGE.start, SENTENCES_RANGE.stop)
    await client.send_message(chat_id, " ".join(words[:count]))


async def save_and_answer(
    client: TelegramClient,
    message: Message,
    engine: Engine,
    rng: Optional[random.Random] = None,
) -> None:
    """In group chats, save the message and maybe answer it, side by side."""
    if not message.chat.is_group():
        return
    results = await asyncio.gather(
        try_answer(client, message, engine, rng),
        save_message(message, engine),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result


async def stickers_handler(message: Message, engine: Engine) -> None:
    """Record a received sticker in the database."""
    sticker = message.sticker
    if sticker is None:
        return
    try:
        create_sticker(engine, message.chat.id, sticker.file_id)
    except DatabaseError as exc:
        logger.error("Failed to save the sticker: %s", exc)
        return
    logger.info("Saved sticker from %s: %s", message.chat.id, sticker.file_id)


async def route_message(
    client: TelegramClient,
    message: Message,
    engine: Engine,
    language: I18nLanguage,
    bot_username: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> None:
    """Pass a message to the first handler that accepts it."""
    command = Command.parse(message.text, bot_username)
    if command is not None:
        await handle_command(client, message, command, engine, language)
    elif message.text is not None:
        await save_and_answer(client, message, engine, rng)
    elif message.dice is not None:
        await dice_handler(client, message, language, rng)
    elif message.new_chat_members is not None:
        await greeting_handler(client, message, language)
    elif message.photo is not None:
        await images_handler(client, message, engine)
    elif message.sticker is not None:
        await stickers_handler(message, engine)