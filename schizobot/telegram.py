"""A small asynchronous client for the Telegram Bot API and its message types."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import IO, Any, Mapping, Optional, Union

import httpx

API_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT = 60.0
DEFAULT_POLL_TIMEOUT = 30
PARSE_MODE = "HTML"


class TelegramError(Exception):
    """Raised when a Bot API request fails or returns an error."""

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.error_code = error_code


@dataclass(frozen=True)
class User:
    """A Telegram user or bot."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    username: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> User:
        return cls(
            id=int(data["id"]),
            is_bot=bool(data.get("is_bot", False)),
            first_name=data.get("first_name", ""),
            username=data.get("username"),
        )


@dataclass(frozen=True)
class Chat:
    """A chat a message belongs to."""

    id: int
    type: str
    title: Optional[str] = None
    username: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Chat:
        return cls(
            id=int(data["id"]),
            type=data.get("type", "private"),
            title=data.get("title"),
            username=data.get("username"),
        )

    def is_group(self) -> bool:
        """Tell whether the chat is a group or a supergroup."""
        return self.type in ("group", "supergroup")


@dataclass(frozen=True)
class Dice:
    """A dice roll: its emoji and the value it landed on."""

    emoji: str
    value: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Dice:
        return cls(emoji=data["emoji"], value=int(data["value"]))


@dataclass(frozen=True)
class PhotoSize:
    """One size of a sent photo."""

    file_id: str
    file_unique_id: str = ""
    width: int = 0
    height: int = 0
    file_size: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PhotoSize:
        return cls(
            file_id=data["file_id"],
            file_unique_id=data.get("file_unique_id", ""),
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
            file_size=data.get("file_size"),
        )


@dataclass(frozen=True)
class StickerFile:
    """A sent sticker."""

    file_id: str
    file_unique_id: str = ""
    emoji: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StickerFile:
        return cls(
            file_id=data["file_id"],
            file_unique_id=data.get("file_unique_id", ""),
            emoji=data.get("emoji"),
        )


@dataclass(frozen=True)
class Message:
    """A chat message with the parts the bot reacts to."""

    message_id: int
    chat: Chat
    from_user: Optional[User] = None
    text: Optional[str] = None
    dice: Optional[Dice] = None
    photo: Optional[list[PhotoSize]] = None
    sticker: Optional[StickerFile] = None
    new_chat_members: Optional[list[User]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        author = data.get("from")
        dice = data.get("dice")
        photo = data.get("photo")
        sticker = data.get("sticker")
        members = data.get("new_chat_members")
        return cls(
            message_id=int(data["message_id"]),
            chat=Chat.from_dict(data["chat"]),
            from_user=User.from_dict(author) if author is not None else None,
            text=data.get("text"),
            dice=Dice.from_dict(dice) if dice is not None else None,
            photo=[PhotoSize.from_dict(p) for p in photo] if photo is not None else None,
            sticker=StickerFile.from_dict(sticker) if sticker is not None else None,
            new_chat_members=(
                [User.from_dict(m) for m in members] if members is not None else None
            ),
        )


@dataclass(frozen=True)
class RemoteFile:
    """A file stored on Telegram's servers, ready to be downloaded."""

    file_id: str
    file_unique_id: str = ""
    file_size: Optional[int] = None
    file_path: str = field(default="")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RemoteFile:
        return cls(
            file_id=data["file_id"],
            file_unique_id=data.get("file_unique_id", ""),
            file_size=data.get("file_size"),
            file_path=data.get("file_path", ""),
        )


Destination = Union[str, "os.PathLike[str]", IO[bytes]]


class TelegramClient:
    """Calls Bot API methods for one bot token; text is sent as HTML."""

    def __init__(self, token: str, http: Optional[httpx.AsyncClient] = None) -> None:
        if not token:
            raise ValueError("Telegram token isn't set")
        self._token = token
        self._api_url = API_URL
        self._owns_http = http is None
        self._http = http if http is not None else httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)

    async def __aenter__(self) -> TelegramClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request(self, method: str, params: Mapping[str, Any], timeout: Any) -> Any:
        url = f"{self._api_url}/bot{self._token}/{method}"
        try:
            response = await self._http.post(url, json=dict(params), timeout=timeout)
        except httpx.HTTPError as exc:
            raise TelegramError(f"request to {method} failed") from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise TelegramError(
                f"invalid response from {method} (HTTP {response.status_code})"
            ) from exc
        if not isinstance(body, dict):
            raise TelegramError(f"invalid response from {method}")
        if not body.get("ok"):
            raise TelegramError(
                body.get("description", f"{method} failed"), body.get("error_code")
            )
        return body.get("result")

    async def call(self, method: str, **kwargs: Any) -> Any:
        """Call a Bot API method and return its result; None arguments are dropped."""
        params = {key: value for key, value in kwargs.items() if value is not None}
        return await self._request(method, params, httpx.USE_CLIENT_DEFAULT)

    async def get_me(self) -> User:
        """Return the bot's own user."""
        return User.from_dict(await self.call("getMe"))

    async def send_message(
        self, chat_id: int, text: str, reply_to: Optional[int] = None
    ) -> Message:
        """Send an HTML text message, optionally as a reply."""
        result = await self.call(
            "sendMessage",
            chat_id=chat_id,
            text=text,
            parse_mode=PARSE_MODE,
            reply_parameters=_reply(reply_to),
        )
        return Message.from_dict(result)

    async def send_dice(
        self, chat_id: int, emoji: Optional[str] = None, reply_to: Optional[int] = None
    ) -> Message:
        """Roll a dice with the given emoji, optionally as a reply."""
        result = await self.call(
            "sendDice", chat_id=chat_id, emoji=emoji, reply_parameters=_reply(reply_to)
        )
        return Message.from_dict(result)

    async def send_sticker(self, chat_id: int, sticker_id: str) -> Message:
        """Send a sticker by its file ID."""
        result = await self.call("sendSticker", chat_id=chat_id, sticker=sticker_id)
        return Message.from_dict(result)

    async def get_file(self, file_id: str) -> RemoteFile:
        """Look up a file so that it can be downloaded."""
        return RemoteFile.from_dict(await self.call("getFile", file_id=file_id))

    async def download_file(self, file_path: str, destination: Destination) -> None:
        """Download a file into a path or a writable binary file object."""
        url = f"{self._api_url}/file/bot{self._token}/{file_path}"
        try:
            async with self._http.stream("GET", url) as response:
                if response.status_code != 200:
                    raise TelegramError(
                        f"failed to download file (HTTP {response.status_code})",
                        response.status_code,
                    )
                if hasattr(destination, "write"):
                    async for chunk in response.aiter_bytes():
                        destination.write(chunk)  # type: ignore[union-attr]
                else:
                    with open(destination, "wb") as handle:  # type: ignore[arg-type]
                        async for chunk in response.aiter_bytes():
                            handle.write(chunk)
        except httpx.HTTPError as exc:
            raise TelegramError("failed to download file") from exc

    async def get_updates(
        self, offset: Optional[int] = None, timeout: int = DEFAULT_POLL_TIMEOUT
    ) -> list[dict[str, Any]]:
        """Long-poll for new updates starting at *offset*."""
        params: dict[str, Any] = {"timeout": timeout}
        if offset is not None:
            params["offset"] = offset
        result = await self._request("getUpdates", params, timeout + 10)
        return list(result or [])

    async def close(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_http:
            await self._http.aclose()


def _reply(message_id: Optional[int]) -> Optional[dict[str, int]]:
    return {"message_id": message_id} if message_id is not None else None