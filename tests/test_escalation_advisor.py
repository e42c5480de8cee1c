"""Tests for the human handoff advisor and LINE link helpers."""

import pytest

from triage.escalation_advisor import (
    EscalationAdvisor,
    EscalationReason,
    LineHandoffChannel,
    Urgency,
    build_handoff_url,
    validate_handoff_url,
)
from triage.topics import Language, Topic


@pytest.fixture
def advisor():
    return EscalationAdvisor()


class TestEscalationRules:
    def test_emergency_phrase(self, advisor):
        decision = advisor.should_escalate("My father is unconscious", Topic.GENERAL, 1, Language.EN)
        assert decision.should_recommend
        assert decision.urgency == Urgency.HIGH
        assert decision.reason == EscalationReason.EMERGENCY

    def test_emergency_beats_complex_topic(self, advisor):
        decision = advisor.should_escalate("She has chest pain after her pills", Topic.MEDICATION, 1)
        assert decision.reason == EscalationReason.EMERGENCY

    def test_thai_emergency(self, advisor):
        decision = advisor.should_escalate("คุณพ่อหายใจไม่ออก", Topic.GENERAL, 1)
        assert decision.reason == EscalationReason.EMERGENCY
        assert "1669" in decision.display_message

    @pytest.mark.parametrize("topic", [
        Topic.ALZHEIMER, Topic.MEDICATION, Topic.POST_OP, Topic.DIABETES, Topic.EMERGENCY,
    ])
    def test_complex_topics(self, advisor, topic):
        decision = advisor.should_escalate("How should I manage this?", topic, 1, Language.EN)
        assert decision.should_recommend
        assert decision.urgency == Urgency.MEDIUM
        assert decision.reason == EscalationReason.COMPLEX_TOPIC

    def test_topic_accepts_strings(self, advisor):
        decision = advisor.should_escalate("question", "diabetes", 1, "en")
        assert decision.reason == EscalationReason.COMPLEX_TOPIC

    def test_distress_phrasing(self, advisor):
        decision = advisor.should_escalate("I am so overwhelmed", Topic.SLEEP, 1, Language.EN)
        assert decision.reason == EscalationReason.COMPLEX_LANGUAGE
        assert decision.urgency == Urgency.MEDIUM

    def test_very_long_message(self, advisor):
        decision = advisor.should_escalate("x" * 601, Topic.GENERAL, 1, Language.EN)
        assert decision.reason == EscalationReason.COMPLEX_LANGUAGE

    def test_long_conversation(self, advisor):
        decision = advisor.should_escalate("Thanks", Topic.SLEEP, 6, Language.EN)
        assert decision.should_recommend
        assert decision.urgency == Urgency.LOW
        assert decision.reason == EscalationReason.LONG_CONVERSATION

    def test_long_conversation_threshold_is_exclusive(self, advisor):
        decision = advisor.should_escalate("Thanks", Topic.SLEEP, 5, Language.EN)
        assert not decision.should_recommend
        assert decision.reason == EscalationReason.NONE

    def test_no_recommendation(self, advisor):
        decision = advisor.should_escalate("Thanks", Topic.DIET, 1, Language.EN)
        assert not decision.should_recommend
        assert decision.urgency == Urgency.LOW
        assert decision.display_message

    def test_bad_input_never_raises(self, advisor):
        decision = advisor.should_escalate(None, "not-a-topic", None, None)
        assert decision.reason == EscalationReason.NONE

    def test_configurable_threshold(self):
        advisor = EscalationAdvisor(long_conversation_turns=2)
        assert advisor.should_escalate("ok", Topic.SLEEP, 3, Language.EN).reason == EscalationReason.LONG_CONVERSATION


class TestDisplayMessages:
    def test_language_of_message(self, advisor):
        en = advisor.get_display_message(EscalationReason.COMPLEX_TOPIC, Urgency.MEDIUM, Language.EN)
        th = advisor.get_display_message(EscalationReason.COMPLEX_TOPIC, Urgency.MEDIUM, Language.TH)
        assert en.startswith("This topic is quite complex")
        assert "ซับซ้อน" in th

    def test_brand_rendered(self):
        advisor = EscalationAdvisor(brand_name="CareCo", channel_name="LINE OA")
        message = advisor.get_display_message(EscalationReason.NONE, Urgency.LOW, Language.EN)
        assert "CareCo" in message
        assert "LINE OA" in message

    def test_unknown_pair_uses_default(self, advisor):
        message = advisor.get_display_message(EscalationReason.EMERGENCY, Urgency.LOW, Language.EN)
        assert message.startswith("If you need additional assistance")

    def test_to_dict(self, advisor):
        data = advisor.should_escalate("Thanks", Topic.DIET, 6, Language.EN).to_dict()
        assert data["reason"] == "long_conversation"
        assert data["urgency"] == "low"
        assert data["should_recommend"] is True


class TestHandoffLinks:
    @pytest.mark.parametrize("url", [
        "https://line.me/ti/p/@jirung",
        "https://line.me/R/ti/p/@jirung",
        "https://liff.line.me/1234567890-AbCdEfGh",
        "https://lin.ee/abc123",
    ])
    def test_valid_urls(self, url):
        assert validate_handoff_url(url)

    @pytest.mark.parametrize("url", [None, "", "http://line.me/ti/p/@jirung", "https://example.com"])
    def test_invalid_urls(self, url):
        assert not validate_handoff_url(url)

    def test_liff_url_gets_tracking(self):
        url = build_handoff_url(
            "https://liff.line.me/1234567890-AbCdEfGh", "abcdef1234567890",
            Topic.DIET, EscalationReason.COMPLEX_TOPIC,
        )
        assert url.startswith("https://liff.line.me/1234567890-AbCdEfGh?")
        assert "source=jirung_ai" in url
        assert "session=abcdef12&" in url
        assert "topic=diet" in url
        assert "reason=complex_topic" in url

    def test_other_links_unchanged(self):
        url = "https://lin.ee/abc123"
        assert build_handoff_url(url, "s1", Topic.DIET, EscalationReason.NONE) == url

    def test_channel(self):
        channel = LineHandoffChannel("https://liff.line.me/1234567890-AbCdEfGh")
        assert channel.is_enabled
        assert "topic=sleep" in channel.open("session-1", Topic.SLEEP, EscalationReason.MANUAL)

    def test_disabled_channel(self):
        channel = LineHandoffChannel(None)
        assert not channel.is_enabled
        assert channel.open("session-1", Topic.SLEEP, EscalationReason.MANUAL) == ""
