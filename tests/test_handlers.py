import random

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from schizobot.database import (
    Image,
    count_messages_by_chat,
    create_message,
    create_schema,
    create_sticker,
    get_random_sticker_id,
    init_engine,
)
from schizobot.handlers import (
    dice_handler,
    greeting_handler,
    images_handler,
    route_message,
    save_and_answer,
    save_message,
    stickers_handler,
    try_answer,
)
from schizobot.i18n import I18nLanguage, LanguageDice, StatsMessage
from schizobot.telegram import (
    Chat,
    Dice,
    Message,
    PhotoSize,
    RemoteFile,
    StickerFile,
    TelegramError,
    User,
)

GROUP_ID = -1001
BOT_ID = 999


class ScriptedRandom(random.Random):
    def __init__(self, values, seed=0):
        super().__init__(seed)
        self._values = list(values)

    def random(self):
        if self._values:
            return self._values.pop(0)
        return super().random()


class FakeClient:
    def __init__(self, dice_value=6, file_error=False):
        self.sent = []
        self.dice_value = dice_value
        self.file_error = file_error
        self._next_id = 1000

    def _reply(self, chat_id, **kwargs):
        self._next_id += 1
        return Message(message_id=self._next_id, chat=Chat(chat_id, "group"), **kwargs)

    async def send_message(self, chat_id, text, reply_to=None):
        self.sent.append(("message", chat_id, text, reply_to))
        return self._reply(chat_id, text=text)

    async def send_dice(self, chat_id, emoji=None, reply_to=None):
        self.sent.append(("dice", chat_id, emoji, reply_to))
        return self._reply(chat_id, dice=Dice(emoji or "🎲", self.dice_value))

    async def send_sticker(self, chat_id, sticker_id):
        self.sent.append(("sticker", chat_id, sticker_id))
        return self._reply(chat_id)

    async def get_me(self):
        return User(id=BOT_ID, is_bot=True, username="schizo_bot")

    async def get_file(self, file_id):
        if self.file_error:
            raise TelegramError("not found", 400)
        return RemoteFile(file_id=file_id, file_path="photos/file_1.png")

    async def download_file(self, file_path, destination):
        destination.write(b"image-bytes")


@pytest.fixture
def engine(tmp_path):
    db = init_engine(f"sqlite:///{tmp_path / 'bot.sqlite'}")
    create_schema(db)
    return db


@pytest.fixture
def language():
    return I18nLanguage(
        start_message="hello there",
        greeting_message="hi everyone",
        dice=LanguageDice(received="my turn", win="I got {mine}, you got {yours}"),
        stats_message=StatsMessage(base="Stats: {value}", plurals=["one", "few", "many"]),
    )


def make_message(chat_type="group", **kwargs):
    kwargs.setdefault("from_user", User(id=42, first_name="Ann"))
    return Message(message_id=7, chat=Chat(GROUP_ID, chat_type), **kwargs)


@pytest.mark.asyncio
async def test_dice_bot_wins(language):
    client = FakeClient(dice_value=5)
    message = make_message(dice=Dice("🎲", 2))
    await dice_handler(client, message, language, ScriptedRandom([0.0]))
    assert [entry[0] for entry in client.sent] == ["message", "dice", "message"]
    assert client.sent[0] == ("message", GROUP_ID, "my turn", 7)
    assert client.sent[1][2] == "🎲"
    assert client.sent[2] == ("message", GROUP_ID, "I got 5, you got 2", 7)


@pytest.mark.asyncio
async def test_dice_bot_loses(language):
    client = FakeClient(dice_value=1)
    message = make_message(dice=Dice("🎯", 4))
    await dice_handler(client, message, language, ScriptedRandom([0.0]))
    assert [entry[0] for entry in client.sent] == ["message", "dice"]
    assert client.sent[1][2] == "🎯"


@pytest.mark.asyncio
async def test_dice_ignored_by_chance(language):
    client = FakeClient()
    message = make_message(dice=Dice("🎲", 2))
    await dice_handler(client, message, language, ScriptedRandom([0.99]))
    assert client.sent == []


@pytest.mark.asyncio
async def test_greeting_when_bot_added(language):
    client = FakeClient()
    message = make_message(new_chat_members=[User(id=5), User(id=BOT_ID, is_bot=True)])
    await greeting_handler(client, message, language)
    assert client.sent == [("message", GROUP_ID, "hi everyone", None)]


@pytest.mark.asyncio
async def test_no_greeting_for_others(language):
    client = FakeClient()
    message = make_message(new_chat_members=[User(id=5)])
    await greeting_handler(client, message, language)
    assert client.sent == []


@pytest.mark.asyncio
async def test_images_saved(engine, tmp_path):
    client = FakeClient()
    photo = [PhotoSize("small"), PhotoSize("large")]
    await images_handler(client, make_message(photo=photo), engine, str(tmp_path))
    assert (tmp_path / "large.png").read_bytes() == b"image-bytes"
    assert not (tmp_path / "small.png").exists()
    with Session(engine) as session:
        rows = session.scalars(select(Image)).all()
    assert [(row.chat_id, row.image_id) for row in rows] == [(GROUP_ID, "large")]


@pytest.mark.asyncio
async def test_images_file_info_failure(engine, tmp_path):
    client = FakeClient(file_error=True)
    await images_handler(client, make_message(photo=[PhotoSize("x")]), engine, str(tmp_path))
    assert list(tmp_path.glob("*.png")) == []
    with Session(engine) as session:
        assert session.scalars(select(Image)).all() == []


@pytest.mark.asyncio
async def test_save_message(engine):
    await save_message(make_message(text="hello"), engine)
    assert count_messages_by_chat(engine, GROUP_ID) == 1


@pytest.mark.asyncio
async def test_save_message_without_text(engine):
    await save_message(make_message(), engine)
    await save_message(make_message(text="x", from_user=None), engine)
    assert count_messages_by_chat(engine, GROUP_ID) == 0


@pytest.mark.asyncio
async def test_try_answer_sticker(engine):
    create_sticker(engine, GROUP_ID, "sticker-1")
    client = FakeClient()
    await try_answer(client, make_message(text="hi"), engine, ScriptedRandom([0.0, 0.1]))
    assert client.sent == [("sticker", GROUP_ID, "sticker-1")]


@pytest.mark.asyncio
async def test_try_answer_sticker_none_saved(engine):
    client = FakeClient()
    await try_answer(client, make_message(text="hi"), engine, ScriptedRandom([0.0, 0.1]))
    assert client.sent == []


@pytest.mark.asyncio
async def test_try_answer_needs_enough_messages(engine):
    for n in range(50):
        create_message(engine, GROUP_ID, f"word{n}", 1)
    client = FakeClient()
    await try_answer(client, make_message(text="hi"), engine, ScriptedRandom([0.0, 0.9]))
    assert client.sent == []


@pytest.mark.asyncio
async def test_try_answer_generates_text(engine):
    saved = {f"word{n}" for n in range(60)}
    for word in saved:
        create_message(engine, GROUP_ID, word, 1)
    client = FakeClient()
    await try_answer(client, make_message(text="hi"), engine, ScriptedRandom([0.0, 0.9]))
    assert len(client.sent) == 1
    kind, chat_id, text, _ = client.sent[0]
    assert (kind, chat_id) == ("message", GROUP_ID)
    words = text.split()
    assert 5 <= len(words) < 30
    assert set(words) <= saved
    assert len(set(words)) == len(words)


@pytest.mark.asyncio
async def test_try_answer_skipped_by_chance(engine):
    create_sticker(engine, GROUP_ID, "sticker-1")
    client = FakeClient()
    await try_answer(client, make_message(text="hi"), engine, ScriptedRandom([0.5]))
    assert client.sent == []


@pytest.mark.asyncio
async def test_save_and_answer_ignores_private(engine):
    client = FakeClient()
    await save_and_answer(
        client, make_message("private", text="hi"), engine, ScriptedRandom([0.99])
    )
    assert count_messages_by_chat(engine, GROUP_ID) == 0


@pytest.mark.asyncio
async def test_save_and_answer_supergroup(engine):
    client = FakeClient()
    await save_and_answer(
        client, make_message("supergroup", text="hi"), engine, ScriptedRandom([0.99])
    )
    assert count_messages_by_chat(engine, GROUP_ID) == 1
    assert client.sent == []


@pytest.mark.asyncio
async def test_save_and_answer_propagates_send_error(engine):
    class FailingClient(FakeClient):
        async def send_sticker(self, chat_id, sticker_id):
            raise TelegramError("blocked", 403)

    create_sticker(engine, GROUP_ID, "s")
    with pytest.raises(TelegramError):
        await save_and_answer(
            FailingClient(), make_message(text="hi"), engine, ScriptedRandom([0.0, 0.1])
        )
    assert count_messages_by_chat(engine, GROUP_ID) == 1


@pytest.mark.asyncio
async def test_stickers_handler(engine):
    await stickers_handler(make_message(sticker=StickerFile("st-9")), engine)
    assert get_random_sticker_id(engine, GROUP_ID) == "st-9"


@pytest.mark.asyncio
async def test_route_start(engine, language):
    client = FakeClient()
    await route_message(client, make_message(text="/start"), engine, language, "schizo_bot")
    assert client.sent == [("message", GROUP_ID, "hello there", None)]
    assert count_messages_by_chat(engine, GROUP_ID) == 0


@pytest.mark.asyncio
async def test_route_stats(engine, language):
    client = FakeClient()
    await route_message(client, make_message(text="/stats"), engine, language, "schizo_bot")
    assert client.sent == [("message", GROUP_ID, "Stats: <b>0</b> many", None)]


@pytest.mark.asyncio
async def test_route_command_for_other_bot_is_text(engine, language):
    client = FakeClient()
    await route_message(
        client,
        make_message(text="/start@other_bot"),
        engine,
        language,
        "schizo_bot",
        ScriptedRandom([0.99]),
    )
    assert client.sent == []
    assert count_messages_by_chat(engine, GROUP_ID) == 1


@pytest.mark.asyncio
async def test_route_sticker(engine, language):
    client = FakeClient()
    await route_message(client, make_message(sticker=StickerFile("st-1")), engine, language)
    assert get_random_sticker_id(engine, GROUP_ID) == "st-1"


@pytest.mark.asyncio
async def test_route_greeting(engine, language):
    client = FakeClient()
    message = make_message(new_chat_members=[User(id=BOT_ID, is_bot=True)])
    await route_message(client, message, engine, language)
    assert client.sent == [("message", GROUP_ID, "hi everyone", None)]