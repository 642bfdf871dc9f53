"""SQLAlchemy ORM models for the local fallback store."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class LocalCacheEntry(Base):
    """Local mirror of a cache key, used when the remote store is unreachable."""

    __tablename__ = "local_cache_entries"
    __table_args__ = (
        Index("ix_local_cache_entries_expires_at", "expires_at"),
    )

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    namespace: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)  # JSON document
    expires_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # epoch ms
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<LocalCacheEntry(key={self.key}, namespace={self.namespace})>"
