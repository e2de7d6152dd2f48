from __future__ import annotations

from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _engine_kwargs(database_url: str) -> dict[str, Any]:
    if not database_url.startswith("sqlite"):
        return {}
    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    # In-memory databases live on a single connection
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


class Database:
    Model = Base
    Column = Column
    Integer = Integer
    String = String
    Text = Text
    Boolean = Boolean
    Date = Date
    DateTime = DateTime
    ForeignKey = ForeignKey
    UniqueConstraint = UniqueConstraint
    CheckConstraint = CheckConstraint
    Index = Index
    relationship = staticmethod(relationship)
    func = func
    select = staticmethod(select)

    def __init__(self, database_url: str, echo: bool = False):
        self.engine = create_engine(database_url, echo=echo, future=True, **_engine_kwargs(database_url))
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            future=True,
        )

    def new_session(self) -> Session:
        return self.SessionLocal()

    def create_all(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(self.engine)

    def __getattr__(self, item: str) -> Any:
        return getattr(Base, item)


from points_engine.config import settings

db = Database(settings.DATABASE_URL, echo=settings.SQL_ECHO)
