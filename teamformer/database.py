# teamformer/database.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.engine.url import make_url

load_dotenv()


def _default_db_url() -> str:
    """File-based SQLite DB at the project root when no DATABASE_URL is set."""
    root = Path(__file__).resolve().parents[1]
    return f"sqlite+aiosqlite:///{(root / 'teamformer.db').as_posix()}"


def _translate_sslmode(value: str) -> Optional[str]:
    """Translate libpq sslmode values to asyncpg-compatible flags."""

    normalized = value.strip().lower()
    if normalized in {"require", "verify-ca", "verify-full"}:
        return "true"
    if normalized == "disable":
        return "false"

    # "prefer" and "allow" have no asyncpg equivalent; driver defaults apply.
    return None


def _normalize_database_url(raw_url: Optional[str]) -> Optional[str]:
    """Force the async driver for Postgres URLs and fix up sslmode."""

    if not raw_url:
        return raw_url

    try:
        url = make_url(raw_url)
    except Exception:
        return raw_url

    driver = url.drivername.lower()
    if driver in {"postgresql", "postgres"} or (
        driver.startswith("postgresql+") and driver != "postgresql+asyncpg"
    ):
        url = url.set(drivername="postgresql+asyncpg")

    if url.drivername == "postgresql+asyncpg":
        query = dict(url.query)
        sslmode = query.pop("sslmode", None)
        if sslmode is not None:
            translated = _translate_sslmode(sslmode)
            if translated is not None:
                query["ssl"] = translated
        if query != url.query:
            url = url.set(query=query)

    return url.render_as_string(hide_password=False)


def _database_url_from_env(env: Mapping[str, str]) -> Optional[str]:
    for raw in (env.get("DATABASE_URL"), env.get("POSTGRES_URL")):
        normalized = _normalize_database_url(raw)
        if normalized:
            return normalized
    return None


DEFAULT_SQLITE_URL: str = _default_db_url()
DATABASE_URL: str = _database_url_from_env(os.environ) or DEFAULT_SQLITE_URL

ECHO = os.getenv("SQLALCHEMY_ECHO", "0").lower() in {"1", "true", "yes"}


def _build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(
        database_url,
        echo=ECHO,
        pool_pre_ping=True,
    )


def build_session_factory(bind_engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=bind_engine,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


Base = declarative_base()

engine: AsyncEngine
SessionLocal: sessionmaker
CURRENT_DATABASE_URL: str


def configure_engine(database_url: str) -> None:
    """Configure the global engine/session factory pair.

    Lets startup swap to the bundled SQLite database when Postgres is not
    reachable during local development.
    """

    global engine, SessionLocal, CURRENT_DATABASE_URL

    engine = _build_engine(database_url)
    SessionLocal = build_session_factory(engine)
    CURRENT_DATABASE_URL = database_url


configure_engine(DATABASE_URL)


async def init_models(bind_engine: Optional[AsyncEngine] = None) -> None:
    """Register every mapped class with Base and create missing tables."""

    import teamformer.models  # noqa: F401

    async with (bind_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
