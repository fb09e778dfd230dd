from __future__ import annotations

import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase


logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


@lru_cache(maxsize=4)
def get_engine(dsn: str):
    return create_engine(dsn, future=True, pool_pre_ping=True)


def create_schema(engine) -> None:
    # Registers the model classes on Base.metadata.
    from sso.infrastructure.db.models import accounts, sessions  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("db: schema ensured tables=%s", len(Base.metadata.tables))
