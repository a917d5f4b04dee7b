"""
Local card store tables.

Timestamps are stored as integer epoch milliseconds, the same representation
the remote store uses, so records round-trip without timezone drift.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, Float, Index, Integer, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class CardRow(Base):
    """One vocabulary item and its scheduling state."""

    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    term: Mapped[str] = mapped_column(Text, nullable=False)
    meaning: Mapped[str] = mapped_column(Text, nullable=False, default="")
    explanation: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phonetic: Mapped[str] = mapped_column(Text, nullable=False, default="")
    deck_id: Mapped[str | None] = mapped_column(Text, index=True)
    created_at: Mapped[int | None] = mapped_column(BigInteger)
    updated_at: Mapped[int | None] = mapped_column(BigInteger)

    # Scheduling
    interval_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    step: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_at: Mapped[int | None] = mapped_column(BigInteger, index=True)

    __table_args__ = (Index("ix_cards_deck_term", "deck_id", "term"),)


class DeckRow(Base):
    __tablename__ = "decks"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[int | None] = mapped_column(BigInteger)


class ReviewLogRow(Base):
    """Append-only review ledger."""

    __tablename__ = "review_logs"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    card_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    rating: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)


class LocalSettingRow(Base):
    """Device-local key/value settings (daily limit). Never synced."""

    __tablename__ = "local_settings"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
