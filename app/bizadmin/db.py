from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Generator
from typing import Any

from flask import Flask, current_app, g
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker


def engine_options(db_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("postgres"):
        options.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return options


def make_engine(db_url: str) -> Engine:
    engine = create_engine(db_url, **engine_options(db_url))
    if db_url.startswith("sqlite"):
        # ON DELETE CASCADE / SET NULL on the reference columns only fire with this pragma
        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_connection, _connection_record):  # type: ignore[no-redef]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    # expire on commit: API responses are serialized after the commit and must see
    # references re-read from the database (e.g. approvedBy after an approval)
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=True, future=True)


def init_db(app: Flask) -> None:
    engine = make_engine(app.config["DATABASE_URL"])
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = make_sessionmaker(engine)


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session, created on first use and closed at teardown.
    Panel requests that call the API in-process get a second, independent session.
    """
    s = getattr(g, "db_session", None)
    if s is not None:
        return s
    sm = (app or current_app).extensions["sqlalchemy_sessionmaker"]
    g.db_session = sm()
    return g.db_session


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is None:
        return
    try:
        s.close()
    finally:
        g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """Scripts and tests: one session, committed on success, rolled back on error."""
    s: Session = app.extensions["sqlalchemy_sessionmaker"]()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
