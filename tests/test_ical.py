"""
Tests for iCalendar export.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from tasker.voice.ical import rrule, to_ical
from tasker.voice.models import CalendarEventCandidate, RecurrencePattern


def event(**fields) -> CalendarEventCandidate:
    data = {
        "id": "e1",
        "title": "Team lunch",
        "start_date": datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc),
        "end_date": datetime(2024, 1, 10, 13, 0, tzinfo=timezone.utc),
    }
    data.update(fields)
    return CalendarEventCandidate(**data)


class TestToIcal:
    def test_document_shape(self, now):
        doc = to_ical([event()], timezone="America/Chicago", now=now)

        assert doc.endswith("\r\n")
        lines = doc.split("\r\n")[:-1]
        assert lines[0] == "BEGIN:VCALENDAR"
        assert lines[-1] == "END:VCALENDAR"
        assert "X-WR-TIMEZONE:America/Chicago" in lines
        assert "UID:e1@tasker.app" in lines
        assert "DTSTAMP:20240103T120000Z" in lines
        assert "DTSTART:20240110T120000Z" in lines
        assert "DTEND:20240110T130000Z" in lines

    def test_local_times_written_in_utc(self, now):
        start = datetime(2024, 1, 10, 7, 0, tzinfo=ZoneInfo("America/New_York"))
        doc = to_ical([event(start_date=start, end_date=None)], now=now)
        assert "DTSTART:20240110T120000Z" in doc
        assert "DTEND:20240110T120000Z" in doc

    def test_all_day(self, now):
        doc = to_ical([event(is_all_day=True, end_date=None)], now=now)
        assert "DTSTART;VALUE=DATE:20240110" in doc
        assert "DTEND;VALUE=DATE:20240111" in doc

    def test_escaping(self, now):
        doc = to_ical([event(title="Lunch; then, coffee", description="line one\nline two")], now=now)
        assert "SUMMARY:Lunch\\; then\\, coffee" in doc
        assert "DESCRIPTION:line one\\nline two" in doc

    def test_recurring_event(self, now):
        recurrence = RecurrencePattern(type="weekly", days_of_week=[6, 0], count=52)
        doc = to_ical([event(recurrence=recurrence)], now=now)
        assert "RRULE:FREQ=WEEKLY;BYDAY=SU,SA;COUNT=52" in doc

    def test_empty(self, now):
        doc = to_ical([], now=now)
        assert "BEGIN:VEVENT" not in doc


class TestRrule:
    def test_interval_and_until(self):
        pattern = RecurrencePattern(
            type="monthly",
            interval=2,
            end_date=datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
        )
        assert rrule(pattern) == "FREQ=MONTHLY;INTERVAL=2;UNTIL=20241231T235959Z"

    def test_count_wins_over_until(self):
        pattern = RecurrencePattern(
            type="daily",
            count=5,
            end_date=datetime(2024, 12, 31, tzinfo=timezone.utc),
        )
        assert rrule(pattern) == "FREQ=DAILY;COUNT=5"
