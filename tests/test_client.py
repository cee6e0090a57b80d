"""
Tests for the interpretation client.
"""

from datetime import timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from tasker.exceptions import LLMParseError, LLMTransportError
from tasker.voice.client import (
    InterpretationClient,
    coerce_events,
    parse_model_output,
    strip_code_fences,
)
from tasker.voice.prompts import build_prompt

REPLY = {
    "intent": "task_and_calendar",
    "tasks": [{"id": "t1", "title": "Team lunch"}],
    "calendarEvents": [
        {"id": "e1", "title": "Team lunch", "startDate": "2024-01-10T12:00:00Z", "isAllDay": False}
    ],
    "clarifyingQuestions": [],
    "confidence": 0.9,
}


class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'


class TestParseModelOutput:
    def test_valid(self):
        raw = parse_model_output('{"intent": "task_only", "tasks": [{"title": "x"}], "confidence": 0.7}')
        assert raw.intent == "task_only"
        assert raw.tasks == [{"title": "x"}]
        assert raw.calendar_events == []
        assert raw.confidence == 0.7

    def test_nulls_become_empty(self):
        raw = parse_model_output('{"tasks": null, "calendarEvents": null}')
        assert raw.tasks == []
        assert raw.calendar_events == []
        assert raw.confidence is None

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"tasks": "buy milk"}', '{"tasks": [1]}'])
    def test_invalid(self, content):
        with pytest.raises(LLMParseError) as exc:
            parse_model_output(content)
        assert exc.value.raw == content


class TestCoerceEvents:
    def test_naive_dates_get_user_timezone(self):
        tz = ZoneInfo("America/New_York")
        events = coerce_events([{"title": "Gym", "startDate": "2024-01-10T07:00:00"}], tz)
        assert events[0].start_date.tzinfo is tz
        assert events[0].id.startswith("event_")

    def test_aware_dates_untouched(self):
        events = coerce_events(REPLY["calendarEvents"], ZoneInfo("Asia/Tokyo"))
        assert events[0].start_date.utcoffset() == timedelta(0)

    def test_unreadable_event_dropped(self):
        events = coerce_events(
            [{"title": "No start"}, {"title": "Ok", "startDate": "2024-01-10T07:00:00Z"}],
            timezone.utc,
        )
        assert [e.title for e in events] == ["Ok"]

    def test_bad_recurrence_dropped_event_kept(self):
        raw = {"title": "Gym", "startDate": "2024-01-10T07:00:00Z", "recurrence": {"type": "hourly"}}
        events = coerce_events([raw], timezone.utc)
        assert len(events) == 1
        assert events[0].recurrence is None


class TestInterpret:
    @pytest.mark.asyncio
    async def test_success(self, scripted, now):
        gateway, provider = scripted(REPLY)
        client = InterpretationClient(gateway)
        prompt = build_prompt("Team lunch next Wednesday at noon", now, "UTC")

        raw = await client.interpret(prompt, "Team lunch next Wednesday at noon")

        assert raw.confidence == 0.9
        assert raw.calendar_events[0]["id"] == "e1"
        call = provider.calls[0]
        assert call["json_mode"] is True
        assert call["system_prompt"] == prompt.system
        assert call["messages"][-1].content == "Team lunch next Wednesday at noon"

    @pytest.mark.asyncio
    async def test_fenced_reply(self, scripted, now):
        gateway, _ = scripted('```json\n{"intent": "task_only", "tasks": []}\n```')
        raw = await InterpretationClient(gateway).interpret(build_prompt("x", now, "UTC"), "x")
        assert raw.intent == "task_only"

    @pytest.mark.asyncio
    async def test_transport_error(self, scripted, now):
        gateway, _ = scripted(ConnectionError("HTTP 503"))
        with pytest.raises(LLMTransportError, match="HTTP 503"):
            await InterpretationClient(gateway).interpret(build_prompt("x", now, "UTC"), "x")

    @pytest.mark.asyncio
    async def test_parse_error(self, scripted, now):
        gateway, _ = scripted("Sure! Here are your tasks.")
        with pytest.raises(LLMParseError):
            await InterpretationClient(gateway).interpret(build_prompt("x", now, "UTC"), "x")

    @pytest.mark.asyncio
    async def test_single_request(self, scripted, now):
        gateway, provider = scripted(ConnectionError("down"), REPLY)
        with pytest.raises(LLMTransportError):
            await InterpretationClient(gateway).interpret(build_prompt("x", now, "UTC"), "x")
        assert len(provider.calls) == 1


class TestExtractTasks:
    @pytest.mark.asyncio
    async def test_success(self, scripted):
        gateway, provider = scripted({"tasks": [{"title": "Buy milk"}, "junk"]})
        tasks, degraded = await InterpretationClient(gateway).extract_tasks("buy milk")

        assert tasks == [{"title": "Buy milk"}]
        assert degraded is False
        assert provider.calls[0]["system_prompt"] is None

    @pytest.mark.asyncio
    async def test_failure_degrades(self, scripted):
        text = "Remember to renew the car registration before the end of the month please"
        gateway, _ = scripted(ConnectionError("down"))
        tasks, degraded = await InterpretationClient(gateway).extract_tasks(text)

        assert degraded is True
        assert len(tasks) == 1
        assert tasks[0]["title"] == text[:50]
        assert tasks[0]["summary"] == text

    @pytest.mark.asyncio
    async def test_unparseable_degrades(self, scripted):
        gateway, _ = scripted("nope")
        tasks, degraded = await InterpretationClient(gateway).extract_tasks("buy milk")
        assert degraded is True
        assert tasks[0]["title"] == "buy milk"

    @pytest.mark.asyncio
    async def test_empty_list_degrades(self, scripted):
        gateway, _ = scripted({"tasks": []})
        tasks, degraded = await InterpretationClient(gateway, fallback_title_chars=3).extract_tasks("buy milk")
        assert degraded is True
        assert tasks[0]["title"] == "buy"
