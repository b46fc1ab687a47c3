"""SQLAlchemy ORM models for the persisted event cache."""

from __future__ import annotations

from sqlalchemy import BigInteger, Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class CacheBase(DeclarativeBase):
    """Base class for cache ORM models."""

    pass


class CacheBank(CacheBase):
    """A compiled bank, including strings and master banks."""

    __tablename__ = "banks"

    path: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    studio_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    last_modified: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    exists: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")
    is_master: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    is_strings: Mapped[bool] = mapped_column(Boolean, default=False, server_default="0")
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<CacheBank(name='{self.name}', path='{self.path}')>"


class BankFileSize(CacheBase):
    """Per-platform byte size of a bank."""

    __tablename__ = "bank_file_sizes"

    bank_path: Mapped[str] = mapped_column(Text, primary_key=True)
    platform: Mapped[str] = mapped_column(String(64), primary_key=True)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<BankFileSize(bank='{self.bank_path}', platform='{self.platform}')>"


class CacheEvent(CacheBase):
    """A playable event."""

    __tablename__ = "events"

    path: Mapped[str] = mapped_column(Text, primary_key=True)
    guid: Mapped[str] = mapped_column(String(38), nullable=False)
    is_3d: Mapped[bool] = mapped_column(Boolean, default=False)
    is_stream: Mapped[bool] = mapped_column(Boolean, default=False)
    is_oneshot: Mapped[bool] = mapped_column(Boolean, default=False)
    min_distance: Mapped[float] = mapped_column(Float, default=0.0)
    max_distance: Mapped[float] = mapped_column(Float, default=0.0)
    length: Mapped[int] = mapped_column(Integer, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_events_guid", "guid"),)

    def __repr__(self) -> str:
        return f"<CacheEvent(path='{self.path}', guid='{self.guid}')>"


class EventBank(CacheBase):
    """Membership of an event in a bank."""

    __tablename__ = "event_banks"

    event_path: Mapped[str] = mapped_column(Text, primary_key=True)
    bank_path: Mapped[str] = mapped_column(Text, primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_event_banks_bank_path", "bank_path"),)

    def __repr__(self) -> str:
        return f"<EventBank(event='{self.event_path}', bank='{self.bank_path}')>"


class CacheParameter(CacheBase):
    """An event parameter, or a global parameter when ``event_path`` is NULL."""

    __tablename__ = "parameters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    studio_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    minimum: Mapped[float] = mapped_column(Float, nullable=False)
    maximum: Mapped[float] = mapped_column(Float, nullable=False)
    default_value: Mapped[float] = mapped_column(Float, nullable=False)
    data1: Mapped[int] = mapped_column(BigInteger, nullable=False)
    data2: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    is_global: Mapped[bool] = mapped_column(Boolean, default=False)
    labels: Mapped[str | None] = mapped_column(Text, nullable=True)
    exists: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_parameters_event_path", "event_path"),)

    def __repr__(self) -> str:
        return f"<CacheParameter(name='{self.name}', event='{self.event_path}')>"


class CacheState(CacheBase):
    """Singleton row stamping the layout version and freshness of the cache."""

    __tablename__ = "cache_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    cache_version: Mapped[int] = mapped_column(Integer, nullable=False)
    strings_bank_write_time: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_updated: Mapped[str | None] = mapped_column(String(32))
    bank_count: Mapped[int | None] = mapped_column(Integer)
    event_count: Mapped[int | None] = mapped_column(Integer)

    def __repr__(self) -> str:
        return f"<CacheState(version={self.cache_version}, events={self.event_count})>"
