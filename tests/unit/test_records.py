"""
Unit tests for remote record encoding.
"""

import pytest

from paperlingo.delivery.models import Card, Deck, Rating, ReviewLog, to_millis
from paperlingo.remote.records import (
    KIND_CARDS,
    KIND_DECKS,
    KIND_LOGS,
    MalformedRecordError,
    card_from_record,
    card_to_record,
    deck_from_record,
    kind_of,
    log_from_record,
    to_record,
)


class TestCardRecords:
    """Tests for the card wire layout."""

    def test_camel_case_layout(self, clock):
        card = Card.new("aloof", "distant", deck_id="deck-1", now=clock())

        record = card_to_record(card)

        assert record["deckId"] == "deck-1"
        assert record["nextReview"] == to_millis(clock())
        assert record["lastUpdated"] == to_millis(clock())
        assert record["interval"] == 0
        assert record["easeFactor"] == 2.5
        assert "deck_id" not in record

    def test_uncategorized_card_omits_deck(self, clock):
        record = card_to_record(Card.new("aloof", "distant", now=clock()))
        assert "deckId" not in record

    def test_decode_web_client_record(self):
        """Records written by the web client decode with defaults for missing fields."""
        record = {
            "id": "abc",
            "term": "candid",
            "meaning": "frank",
            "createdAt": 1710000000000,
            "interval": 3.2,
            "repetitions": 4,
            "nextReview": 1710500000000,
        }

        card = card_from_record(record)

        assert card.deck_id is None
        assert card.ease_factor == 2.5
        assert card.step == 0
        assert card.explanation == ""
        assert to_millis(card.next_review_at) == 1710500000000
        assert card.updated_at is None

    @pytest.mark.parametrize(
        "record",
        [
            {"term": "no id"},
            {"id": "x"},
            {"id": "x", "term": "t", "interval": "soon"},
            {"id": "x", "term": "t", "createdAt": "yesterday"},
        ],
    )
    def test_malformed_card(self, record):
        with pytest.raises(MalformedRecordError):
            card_from_record(record)


class TestOtherRecords:
    """Tests for decks and review logs."""

    def test_deck_roundtrip_fields(self, clock):
        deck = Deck.new("Law", "Contract terms", now=clock())
        record = to_record(deck)

        assert record == {"id": deck.id, "name": "Law", "createdAt": to_millis(clock()), "description": "Contract terms"}
        assert deck_from_record(record) == deck

    def test_log_record(self, clock):
        log = ReviewLog.new("card-9", Rating.HARD, now=clock())
        record = to_record(log)

        assert record["cardId"] == "card-9"
        assert record["rating"] == "hard"
        assert log_from_record(record) == log

    def test_log_with_unknown_rating_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            log_from_record({"id": "l", "cardId": "c", "rating": "5", "timestamp": 1})

    def test_deck_missing_name_is_malformed(self):
        with pytest.raises(MalformedRecordError):
            deck_from_record({"id": "d"})


class TestKinds:
    def test_kind_of(self, clock):
        assert kind_of(Card.new("a", "b", now=clock())) == KIND_CARDS
        assert kind_of(Deck.new("d", now=clock())) == KIND_DECKS
        assert kind_of(ReviewLog.new("c", Rating.GOOD, now=clock())) == KIND_LOGS

    def test_unknown_entity(self):
        with pytest.raises(TypeError):
            kind_of({"id": "x"})
        with pytest.raises(TypeError):
            to_record("x")
