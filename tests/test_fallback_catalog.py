"""Tests for the fallback reply catalog."""

import random
import threading

import pytest

from triage.fallback_catalog import (
    CONTEXT_NOTES,
    FallbackResponseCatalog,
    TopicUsageCounter,
    should_use_emergency_fallback,
)
from triage.topics import Language, Topic

LONG_NOTE_TH = "เนื่องจากเราได้คุยกันมาสักพักแล้ว"
LONG_NOTE_EN = "Since we've been chatting for a while"
REPEAT_NOTE_EN = "If this advice doesn't match your situation"


@pytest.fixture
def catalog():
    return FallbackResponseCatalog(rng=random.Random(7))


class TestCatalogLookup:
    def test_every_topic_and_language_has_text(self, catalog):
        for topic in Topic:
            for language in Language:
                response = catalog.get_response(topic, language)
                assert response
                assert "{" not in response

    def test_emergency_names_numbers(self, catalog):
        for language in Language:
            response = catalog.get_emergency_response(language)
            assert "1669" in response
            assert "1646" in response

    def test_unknown_topic_uses_general(self, catalog):
        assert catalog.get_response("astrology", Language.EN) in catalog.variants(Topic.GENERAL, Language.EN)

    def test_unknown_language_uses_thai(self, catalog):
        assert catalog.get_response(Topic.DIET, "fr") in catalog.variants(Topic.DIET, Language.TH)

    def test_brand_rendered(self):
        catalog = FallbackResponseCatalog(brand_name="CareCo", channel_name="LINE OA")
        assert "CareCo" in catalog.get_response(Topic.MEDICATION, Language.EN)

    def test_has_topic(self, catalog):
        assert catalog.has_topic(Topic.SLEEP)
        assert catalog.has_topic("sleep")
        assert not catalog.has_topic("astrology")
        assert set(catalog.available_topics()) == set(Topic)


class TestContextualResponse:
    def test_first_short_conversation_is_plain(self, catalog):
        response = catalog.get_contextual_response(Topic.DIET, Language.EN, turn_count=1, usage_count=1)
        assert LONG_NOTE_EN not in response
        assert REPEAT_NOTE_EN not in response

    def test_long_conversation_note(self, catalog):
        response = catalog.get_contextual_response(Topic.DIET, Language.TH, turn_count=4, usage_count=1)
        assert LONG_NOTE_TH in response

    def test_threshold_is_exclusive(self, catalog):
        response = catalog.get_contextual_response(Topic.DIET, Language.TH, turn_count=3, usage_count=1)
        assert LONG_NOTE_TH not in response

    def test_repeated_topic_note(self, catalog):
        response = catalog.get_contextual_response(Topic.SLEEP, Language.EN, turn_count=1, usage_count=2)
        assert REPEAT_NOTE_EN in response

    def test_both_notes(self, catalog):
        response = catalog.get_contextual_response(Topic.SLEEP, Language.EN, turn_count=5, usage_count=3)
        assert response.index(LONG_NOTE_EN) < response.index(REPEAT_NOTE_EN)

    def test_emergency_has_no_notes(self, catalog):
        response = catalog.get_contextual_response(Topic.EMERGENCY, Language.EN, turn_count=9, usage_count=9)
        assert "1669" in response
        assert LONG_NOTE_EN not in response
        assert REPEAT_NOTE_EN not in response

    def test_counter_used_when_count_omitted(self, catalog):
        first = catalog.get_contextual_response(Topic.MOOD, Language.EN)
        second = catalog.get_contextual_response(Topic.MOOD, Language.EN)
        assert REPEAT_NOTE_EN not in first
        assert REPEAT_NOTE_EN in second
        assert catalog.usage_stats() == {"mood": 2}

    def test_notes_exist_for_every_language(self):
        for language in Language:
            assert set(CONTEXT_NOTES[language]) == {"long_conversation", "repeated_topic"}


class TestUsageCounter:
    def test_increment_and_reset(self):
        counter = TopicUsageCounter()
        assert counter.increment(Topic.SLEEP) == 1
        assert counter.increment(Topic.SLEEP) == 2
        counter.increment(Topic.DIET)
        assert counter.snapshot() == {"sleep": 2, "diet": 1}
        counter.reset()
        assert counter.snapshot() == {}
        assert counter.get(Topic.SLEEP) == 0

    def test_concurrent_increments(self):
        counter = TopicUsageCounter()

        def work():
            for _ in range(500):
                counter.increment(Topic.FALL)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert counter.get(Topic.FALL) == 4000

    def test_catalog_reset(self, catalog):
        catalog.get_contextual_response(Topic.FALL, Language.EN)
        catalog.reset_usage()
        assert catalog.usage_stats() == {}


class TestEmergencyFallback:
    @pytest.mark.parametrize("message", [
        "Grandma fell in the bathroom",
        "He has a high fever",
        "คุณยายหมดสติ",
    ])
    def test_emergency_messages(self, message):
        assert should_use_emergency_fallback(message)

    @pytest.mark.parametrize("message", ["", None, "What should she eat for dinner?"])
    def test_ordinary_messages(self, message):
        assert not should_use_emergency_fallback(message)
