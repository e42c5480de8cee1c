"""Tests for the chat pipeline, generators and prompt templates."""

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from analytics.errors import EventLogError
from analytics.event_log import InMemoryEventLog
from analytics.events import Routed
from analytics.window import AnalysisWindow
from llm.conversation_store import InMemoryConversationStore
from llm.generator import GenerationError, GeneratorReply, strip_handoff_marker
from llm.orchestrator import ChatPipeline, ChatRequest
from llm.prompt_templates import PromptTemplates
from llm.providers import OpenAIGenerator
from triage.escalation_advisor import EscalationAdvisor, EscalationReason, LineHandoffChannel, Urgency
from triage.fallback_catalog import FallbackResponseCatalog
from triage.topic_classifier import TopicClassifier
from triage.topics import Language, Topic

LIFF_URL = "https://liff.line.me/1234567890-AbCdEfGh"


class FakeGenerator:
    def __init__(self, text="Keep a regular bedtime.", needs_handoff=False):
        self.reply = GeneratorReply(text=text, needs_handoff=needs_handoff)
        self.calls = []

    async def complete(self, prompt, system=None):
        self.calls.append((prompt, system))
        return self.reply


class FailingGenerator:
    async def complete(self, prompt, system=None):
        raise GenerationError("model unavailable")


class BrokenEventLog:
    async def append(self, event):
        raise EventLogError("disk full")

    async def query(self, window, filters=None, limit=None):
        raise EventLogError("disk full")


def _pipeline(generator=None, event_log=None, channel_url=LIFF_URL):
    return ChatPipeline(
        classifier=TopicClassifier(),
        advisor=EscalationAdvisor(),
        catalog=FallbackResponseCatalog(),
        event_log=event_log if event_log is not None else InMemoryEventLog(),
        generator=generator,
        handoff_channel=LineHandoffChannel(channel_url),
    )


def _all_events(log):
    now = datetime.now(timezone.utc)
    window = AnalysisWindow(start=now - timedelta(hours=1), end=now + timedelta(hours=1))
    return asyncio.run(log.query(window))


class TestChatPipeline:
    def test_fallback_without_generator(self):
        log = InMemoryEventLog()
        pipeline = _pipeline(event_log=log)
        result = asyncio.run(pipeline.process(ChatRequest(message="Grandpa has insomnia", session_id="session-abc")))

        assert result.topic == Topic.SLEEP
        assert result.routed == Routed.FALLBACK
        assert result.language == Language.EN
        assert result.response in pipeline.catalog.variants(Topic.SLEEP, Language.EN)
        assert result.turn_count == 1
        assert result.event_logged

        events = _all_events(log)
        assert len(events) == 1
        assert events[0].session_id == "session-"
        assert events[0].routed == Routed.FALLBACK
        assert not events[0].handoff_triggered
        assert pipeline.catalog.usage_stats() == {"sleep": 1}

    def test_generated_reply_gets_disclaimer(self):
        generator = FakeGenerator()
        result = asyncio.run(_pipeline(generator).process(ChatRequest(message="Grandpa has insomnia")))

        assert result.routed == Routed.PRIMARY
        assert result.response.startswith("Keep a regular bedtime.")
        assert "not a medical diagnosis" in result.response
        prompt, system = generator.calls[0]
        assert prompt == "Grandpa has insomnia"
        assert "Jirung" in system
        assert "sleep" in system.lower()

    def test_history_in_prompt(self):
        generator = FakeGenerator()
        pipeline = _pipeline(generator)

        async def run():
            await pipeline.process(ChatRequest(message="Hello", session_id="s1"))
            return await pipeline.process(ChatRequest(message="Grandpa has insomnia", session_id="s1"))

        result = asyncio.run(run())
        assert result.turn_count == 2
        prompt, _ = generator.calls[1]
        assert "User: Hello" in prompt
        assert "Assistant: Keep a regular bedtime." in prompt

    def test_generator_failure_falls_back(self):
        log = InMemoryEventLog()
        result = asyncio.run(_pipeline(FailingGenerator(), log).process(ChatRequest(message="Grandpa has insomnia")))
        assert result.routed == Routed.FALLBACK
        assert result.response
        assert _all_events(log)[0].routed == Routed.FALLBACK

    def test_generator_handoff_flag(self):
        generator = FakeGenerator(text="Let our team help.", needs_handoff=True)
        result = asyncio.run(_pipeline(generator).process(ChatRequest(message="Hello", session_id="abcdef123456")))
        assert not result.escalation.should_recommend
        assert result.show_handoff
        assert result.handoff_url.startswith(LIFF_URL)
        assert "session=abcdef12" in result.handoff_url

    def test_emergency_message(self):
        result = asyncio.run(_pipeline().process(ChatRequest(message="He fell and is bleeding")))
        assert result.escalation.reason == EscalationReason.EMERGENCY
        assert result.escalation.urgency == Urgency.HIGH
        assert result.show_handoff
        assert "1669" in result.response
        assert "reason=emergency" in result.handoff_url

    def test_no_handoff_link_without_channel(self):
        result = asyncio.run(_pipeline(channel_url=None).process(ChatRequest(message="He is unconscious")))
        assert result.show_handoff
        assert result.handoff_url is None

    def test_repeated_topic_and_long_conversation(self):
        pipeline = _pipeline()

        async def run():
            result = None
            for _ in range(4):
                result = await pipeline.process(ChatRequest(message="คุณแม่ไม่ค่อยกินอาหาร", session_id="thai-1"))
            return result

        result = asyncio.run(run())
        assert result.topic == Topic.DIET
        assert result.language == Language.TH
        assert result.turn_count == 4
        assert "เนื่องจากเราได้คุยกันมาสักพักแล้ว" in result.response
        assert "หากคำแนะนำนี้ไม่ตรงกับสถานการณ์ของคุณ" in result.response

    def test_event_log_failure_does_not_fail_chat(self):
        result = asyncio.run(_pipeline(event_log=BrokenEventLog()).process(ChatRequest(message="Hello")))
        assert result.response
        assert not result.event_logged

    def test_snippet_is_scrubbed(self):
        log = InMemoryEventLog()
        asyncio.run(_pipeline(event_log=log).process(ChatRequest(message="email me at a@b.co about food")))
        assert _all_events(log)[0].text_snippet == "email me at [EMAIL] about food"

    def test_language_override(self):
        result = asyncio.run(_pipeline().process(ChatRequest(message="insomnia", language="th")))
        assert result.language == Language.TH

    def test_to_dict(self):
        data = asyncio.run(_pipeline().process(ChatRequest(message="insomnia"))).to_dict()
        assert data["topic"] == "sleep"
        assert data["routed"] == "fallback"
        assert data["escalation"]["reason"] == "none"


class TestConversationStore:
    def test_history_bounded(self):
        store = InMemoryConversationStore(max_history=3)

        async def run():
            for i in range(5):
                await store.record_user_turn("s", f"m{i}")
            return await store.get_history("s")

        history = asyncio.run(run())
        assert [m["content"] for m in history] == ["m2", "m3", "m4"]

    def test_sessions_evicted(self):
        store = InMemoryConversationStore(max_sessions=2)

        async def run():
            for sid in ("a", "b", "c"):
                await store.record_user_turn(sid, "hi")
            return await store.get_history("a"), await store.get_history("c")

        evicted, kept = asyncio.run(run())
        assert evicted == []
        assert len(kept) == 1

    def test_fallback_counts_per_topic(self):
        store = InMemoryConversationStore()

        async def run():
            await store.record_fallback("s", Topic.SLEEP)
            await store.record_fallback("s", Topic.DIET)
            return await store.record_fallback("s", Topic.SLEEP)

        assert asyncio.run(run()) == 2


class TestOpenAIGenerator:
    @staticmethod
    def _client(content=None, delay=0.0):
        async def create(**kwargs):
            if delay:
                await asyncio.sleep(delay)
            message = SimpleNamespace(content=content)
            return SimpleNamespace(choices=[SimpleNamespace(message=message)])
        return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    def test_reply(self):
        generator = OpenAIGenerator(client=self._client("Drink water. [HANDOFF]"))
        reply = asyncio.run(generator.complete("hi", system="be kind"))
        assert reply.text == "Drink water."
        assert reply.needs_handoff

    def test_empty_reply(self):
        generator = OpenAIGenerator(client=self._client("   "))
        with pytest.raises(GenerationError):
            asyncio.run(generator.complete("hi"))

    def test_marker_only(self):
        generator = OpenAIGenerator(client=self._client("[HANDOFF]"))
        with pytest.raises(GenerationError):
            asyncio.run(generator.complete("hi"))

    def test_timeout(self):
        generator = OpenAIGenerator(client=self._client("late", delay=1.0), timeout_seconds=0.01)
        with pytest.raises(GenerationError, match="timed out"):
            asyncio.run(generator.complete("hi"))

    def test_strip_marker(self):
        assert strip_handoff_marker("ok [handoff]") == ("ok", True)
        assert strip_handoff_marker(" ok ") == ("ok", False)


class TestPromptTemplates:
    def test_system_prompt_language(self):
        prompts = PromptTemplates(brand_name="CareCo")
        assert "CareCo" in prompts.get_system_prompt(Topic.GENERAL, Language.EN)
        assert "ค่ะ" in prompts.get_system_prompt(Topic.GENERAL, Language.TH)

    def test_topic_addition(self):
        prompt = PromptTemplates().get_system_prompt(Topic.FALL, Language.EN)
        assert "fall risk" in prompt

    def test_disclaimers(self):
        prompts = PromptTemplates()
        assert prompts.get_response_disclaimer(Topic.GENERAL, Language.EN) == ""
        assert "1669" in prompts.get_response_disclaimer(Topic.EMERGENCY, Language.EN)
        assert "pharmacist" in prompts.get_response_disclaimer(Topic.DIABETES, Language.EN)
        assert "doctor" in prompts.get_response_disclaimer(Topic.SLEEP, Language.EN)

    def test_user_prompt_with_history(self):
        prompt = PromptTemplates().get_user_prompt("now?", history="User: hi")
        assert prompt.endswith("Current message:\nnow?")
