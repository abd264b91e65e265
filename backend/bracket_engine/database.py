import os
from pathlib import Path
from typing import Any, Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tournament.db")


def make_engine(url: str, **kwargs: Any) -> Engine:
    """
    Engine for a bracket store. SQLite gets cross-thread access (route handlers,
    SSE generators and the spectator socket all share it) and, when file backed,
    its directory is created up front.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if ":memory:" not in url:
            Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
    kwargs.setdefault("echo", os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes"))
    return create_engine(url, **kwargs)


engine: Engine = make_engine(DATABASE_URL)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_engine() -> Engine:
    """Engine for handlers that open their own sessions (streaming responses outlive the request scope)"""
    return engine


def init_db(bind: Engine = engine) -> None:
    """Create the bracket tables. Alembic owns the schema in deployed databases."""
    # Registers every table on SQLModel.metadata
    from bracket_engine.models import Bracket, Event, Match, Registration, Result  # noqa: F401

    SQLModel.metadata.create_all(bind)
