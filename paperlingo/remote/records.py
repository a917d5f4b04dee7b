"""
Wire encoding for records kept in the remote store.

Field names follow the JSON layout the web client already writes
(camelCase, epoch-millisecond timestamps), so both clients share one
remote partition.
"""

from __future__ import annotations

from typing import Any

from paperlingo.delivery.models import (
    DEFAULT_EASE,
    Card,
    Deck,
    Rating,
    ReviewLog,
    from_millis,
    to_millis,
)

# Remote collections, one per entity kind
KIND_CARDS = "flashcards"
KIND_DECKS = "decks"
KIND_LOGS = "logs"
KINDS = (KIND_CARDS, KIND_DECKS, KIND_LOGS)

Entity = Card | Deck | ReviewLog


class MalformedRecordError(ValueError):
    """A remote record could not be decoded."""


def kind_of(entity: Entity) -> str:
    if isinstance(entity, Card):
        return KIND_CARDS
    if isinstance(entity, Deck):
        return KIND_DECKS
    if isinstance(entity, ReviewLog):
        return KIND_LOGS
    raise TypeError(f"Not a syncable entity: {type(entity).__name__}")


# ========================================
# Encoding
# ========================================


def card_to_record(card: Card) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": card.id,
        "term": card.term,
        "meaning": card.meaning,
        "explanation": card.explanation,
        "phonetic": card.phonetic,
        "createdAt": to_millis(card.created_at),
        "lastUpdated": to_millis(card.updated_at),
        "interval": card.interval_days,
        "easeFactor": card.ease_factor,
        "repetitions": card.repetitions,
        "step": card.step,
        "nextReview": to_millis(card.next_review_at),
    }
    if card.deck_id is not None:
        record["deckId"] = card.deck_id
    return record


def deck_to_record(deck: Deck) -> dict[str, Any]:
    record: dict[str, Any] = {
        "id": deck.id,
        "name": deck.name,
        "createdAt": to_millis(deck.created_at),
    }
    if deck.description is not None:
        record["description"] = deck.description
    return record


def log_to_record(log: ReviewLog) -> dict[str, Any]:
    return {
        "id": log.id,
        "cardId": log.card_id,
        "rating": log.rating.value,
        "timestamp": to_millis(log.timestamp),
    }


def to_record(entity: Entity) -> dict[str, Any]:
    """Encode any syncable entity."""
    if isinstance(entity, Card):
        return card_to_record(entity)
    if isinstance(entity, Deck):
        return deck_to_record(entity)
    if isinstance(entity, ReviewLog):
        return log_to_record(entity)
    raise TypeError(f"Not a syncable entity: {type(entity).__name__}")


# ========================================
# Decoding
# ========================================


def card_from_record(record: dict[str, Any]) -> Card:
    try:
        return Card(
            id=str(record["id"]),
            term=str(record["term"]),
            meaning=str(record.get("meaning") or ""),
            explanation=str(record.get("explanation") or ""),
            phonetic=str(record.get("phonetic") or ""),
            deck_id=record.get("deckId") or None,
            created_at=from_millis(record.get("createdAt")),
            updated_at=from_millis(record.get("lastUpdated")),
            interval_days=max(0.0, float(record.get("interval") or 0)),
            ease_factor=float(record.get("easeFactor") or DEFAULT_EASE),
            repetitions=int(record.get("repetitions") or 0),
            step=int(record.get("step") or 0),
            next_review_at=from_millis(record.get("nextReview")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Bad card record: {exc}") from exc


def deck_from_record(record: dict[str, Any]) -> Deck:
    try:
        return Deck(
            id=str(record["id"]),
            name=str(record["name"]),
            description=record.get("description"),
            created_at=from_millis(record.get("createdAt")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Bad deck record: {exc}") from exc


def log_from_record(record: dict[str, Any]) -> ReviewLog:
    try:
        return ReviewLog(
            id=str(record["id"]),
            card_id=str(record["cardId"]),
            rating=Rating(record["rating"]),
            timestamp=from_millis(record["timestamp"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Bad review log record: {exc}") from exc
