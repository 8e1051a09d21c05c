"""Database tables for saved images, messages and stickers, and their queries."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Callable, TypeVar

from sqlalchemy import BigInteger, DateTime, Integer, Text, create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

_T = TypeVar("_T")

# BIGINT primary keys only autoincrement as INTEGER on SQLite.
_Id = BigInteger().with_variant(Integer(), "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseError(Exception):
    """Raised when a database operation fails."""


class _Base(DeclarativeBase):
    pass


class Image(_Base):
    """A saved image."""

    __tablename__ = "images"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    chat_id: Mapped[int] = mapped_column(BigInteger)
    image_id: Mapped[str] = mapped_column(Text)


class Message(_Base):
    """A saved text message."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    chat_id: Mapped[int] = mapped_column(BigInteger)
    content: Mapped[str] = mapped_column(Text)
    author_id: Mapped[int] = mapped_column(BigInteger)


class Sticker(_Base):
    """A saved sticker."""

    __tablename__ = "stickers"

    id: Mapped[int] = mapped_column(_Id, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    chat_id: Mapped[int] = mapped_column(BigInteger)
    sticker_id: Mapped[str] = mapped_column(Text)


def init_engine(database_url: str | None = None) -> Engine:
    """Create a pooled engine for *database_url* or `DATABASE_URL`."""
    if database_url is None:
        database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise DatabaseError("database URL isn't set")
    try:
        return create_engine(database_url)
    except (SQLAlchemyError, ImportError) as exc:
        raise DatabaseError("cannot initialize pool") from exc


def create_schema(engine: Engine) -> None:
    """Create the tables that do not exist yet."""
    try:
        _Base.metadata.create_all(engine)
    except SQLAlchemyError as exc:
        raise DatabaseError("failed to create the schema") from exc


def _run(engine: Engine, error: str, work: Callable[[Session], _T]) -> _T:
    try:
        with Session(engine) as session, session.begin():
            return work(session)
    except SQLAlchemyError as exc:
        raise DatabaseError(error) from exc


def _insert(engine: Engine, row: _Base, what: str) -> int:
    def work(session: Session) -> int:
        session.add(row)
        session.flush()
        return row.id  # type: ignore[attr-defined]

    return _run(engine, f"failed to save the {what}", work)


def create_image(engine: Engine, chat_id: int, image_id: str) -> int:
    """Save an image and return its ID."""
    return _insert(engine, Image(chat_id=chat_id, image_id=image_id), "image")


def create_message(engine: Engine, chat_id: int, content: str, author_id: int) -> int:
    """Save a message and return its ID."""
    row = Message(chat_id=chat_id, content=content, author_id=author_id)
    return _insert(engine, row, "message")


def create_sticker(engine: Engine, chat_id: int, sticker_id: str) -> int:
    """Save a sticker and return its ID."""
    return _insert(engine, Sticker(chat_id=chat_id, sticker_id=sticker_id), "sticker")


def get_random_messages_content(engine: Engine, chat_id: int) -> list[str]:
    """Return the contents of all messages of a chat in random order."""
    query = select(Message.content).where(Message.chat_id == chat_id).order_by(func.random())
    return _run(
        engine,
        "failed to randomly select messages",
        lambda session: list(session.scalars(query)),
    )


def count_messages_by_chat(engine: Engine, chat_id: int) -> int:
    """Count the messages saved for a chat."""
    query = select(func.count(Message.id)).where(Message.chat_id == chat_id)
    return _run(engine, "failed to count messages", lambda session: int(session.scalar(query) or 0))


def get_random_sticker_id(engine: Engine, chat_id: int) -> str:
    """Return the ID of a random sticker saved for a chat."""
    query = (
        select(Sticker.sticker_id)
        .where(Sticker.chat_id == chat_id)
        .order_by(func.random())
        .limit(1)
    )
    sticker_id = _run(engine, "failed to select a random sticker", lambda s: s.scalar(query))
    if sticker_id is None:
        raise DatabaseError("failed to select a random sticker")
    return sticker_id