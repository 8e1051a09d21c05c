# schizobot

A Telegram bot for group chats. It records what people write, along with the
stickers and images they send. Now and then it joins in with a reply of its own.

## What it does

- **Text messages** in groups and supergroups are saved with their author. About
  5% of the time the bot answers one. In 30% of those answers it sends a random
  sticker that was seen in the same chat. Otherwise it feeds the chat's saved
  messages into an order-2 Markov chain and sends 5 to 29 words of the generated
  text. It only does that when the chat has more than 50 saved messages.
- **Dice**: when someone throws a dice, the bot takes part 30% of the time. It
  replies with the `dice.received` text and throws a dice with the same emoji. If
  its value is higher, it waits two seconds and sends the `dice.win` text.
- **Stickers** are recorded for later replies.
- **Images**: the largest size of each photo is downloaded into the images
  directory as `<file_id>.<extension>` and recorded in the database.
- **Being added to a group**: if the bot itself is among the new members, it
  posts the greeting text.
- **Commands**:
  - `/start` sends the welcome text.
  - `/stats` shows how many messages have been saved for the chat, with the
    Russian-style plural form.

  A command addressed as `/stats@name` is only answered when `name` is this
  bot's username.

Each message goes to the first of these that applies, in this order: command,
text, dice, new members, photo, sticker. Updates that are not new messages are
ignored.

## Installation

```
pip install .
```

SQLAlchemy needs a driver for the database you use. SQLite works without one.
For PostgreSQL, install a driver such as `psycopg2` yourself.

## Configuration

The bot reads its settings from the environment. A `.env` file is read as well,
found from the working directory upwards.

| Variable         | Meaning                                        | Default         |
|------------------|------------------------------------------------|-----------------|
| `TELEGRAM_TOKEN` | Bot token (required)                           | —               |
| `DATABASE_URL`   | SQLAlchemy database URL (required)             | —               |
| `LANGUAGE_PATH`  | Path to the language JSON file                 | `language.json` |
| `IMAGES_PATH`    | Directory where downloaded images are stored   | `images`        |
| `LOG_LEVEL`      | Logging level                                  | `INFO`          |

Example `.env`:

```
TELEGRAM_TOKEN=token
DATABASE_URL=sqlite:///schizobot.db
```

When the bot starts, it creates any of the tables `images`, `messages` and
`stickers` that do not exist yet.

### Language file

All text the bot sends comes from a JSON file. It is sent as HTML.

```json
{
  "start_message": "Hello!",
  "greeting_message": "Thanks for adding me.",
  "dice": {
    "received": "Oh, a dice! My turn.",
    "win": "I got {mine}, you got {yours}. I win!"
  },
  "stats_message": {
    "base": "I remember {value} in this chat.",
    "plurals": ["message", "messages", "messages"]
  }
}
```

In `stats_message.base`, `{value}` is replaced with the count in bold, followed
by the fitting plural. `plurals` holds three forms, in this order:

1. singular, as in 1 or 21;
2. the form used for 2–4, as in 22–24;
3. everything else, including 11–14.

A file with a missing or mistyped field is rejected at startup.

## Running

```
schizobot
```

`schizobot --version` prints the version. The bot long-polls Telegram for
updates until it is interrupted with Ctrl+C. The exit status is 1 when the
language file, the token or the database cannot be set up.

## Using it as a library

The pieces can also be used on their own:

```python
import random
from schizobot.markov import Chain
from schizobot.commands import Command, pluralize

chain = Chain(2, random.Random(1))
chain.feed("the cat sat on the mat".split())
print(chain.generate_str())

print(pluralize(21, ["сообщение", "сообщения", "сообщений"]))  # <b>21</b> сообщение
print(Command.parse("/stats@mybot", "mybot"))                    # Command.STATS
```

- `schizobot.markov.Chain` is a Markov chain over any hashable tokens.
- `schizobot.telegram.TelegramClient` is a small async Bot API client with
  `get_me`, `send_message`, `send_dice`, `send_sticker`, `get_file`,
  `download_file`, `get_updates` and a generic `call`.
- `schizobot.database` holds the tables and their queries. Failures raise
  `DatabaseError`.
- `schizobot.i18n.load_language` loads and checks a language file.
- `schizobot.handlers.route_message` passes a `Message` to the right handler.

## What it does not do

- It only long-polls. There is no webhook server.
- It does not register its commands with Telegram.
- It does not create the images directory. If the directory is missing, the
  image is skipped and an error is logged.

## Tests

```
pip install ".[test]"
pytest
```