"""
Engine, session factory and the request-scoped session dependency.

get_db() owns the transaction: services stage changes with db.add() and
db.flush(), and the request either commits as a whole or rolls back.
"""

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from app.config import settings

engine_args: dict[str, Any] = {"echo": settings.DEBUG}

if settings.DATABASE_URL.startswith("sqlite"):
    # Handlers run on the threadpool, not the thread that opened the connection
    engine_args["connect_args"] = {"check_same_thread": False}
else:
    engine_args["pool_pre_ping"] = True

engine = create_engine(settings.DATABASE_URL, **engine_args)

# Autoflush off: services flush before they query their own pending rows
SessionLocal = sessionmaker(autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """Yield a session; commit when the request succeeds, roll back otherwise."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """Create any missing tables"""
    import app.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def close_db():
    engine.dispose()
