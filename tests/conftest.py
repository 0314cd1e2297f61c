"""Shared fixtures for the LearnPath tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from learnpath.exceptions import LearnPathAPIError
from learnpath.models import Assignment, Meeting, Session, SubmissionStatus
from learnpath.schedule import normalize_schedule

JAN_1 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def day(n: int, hour: int = 9) -> datetime:
	"""Aware UTC instant on day ``n`` of January 2024 (Jan 1 is day 1)."""
	return JAN_1.replace(hour=hour) + timedelta(days=n - 1)


def iso(value: datetime) -> str:
	return value.isoformat().replace("+00:00", "Z")


def meeting_payload(meeting_id: str, when: datetime, slot: str = "09:00") -> dict:
	return {"id": meeting_id, "date": iso(when), "slot": slot}


def make_schedule(*pairs):
	"""Build a normalized schedule from (meeting_id, datetime) pairs."""
	return normalize_schedule(Meeting(id=meeting_id, date=when) for meeting_id, when in pairs)


def make_assignment(
	assignment_id: str,
	due_at: datetime,
	meeting_id: str = "m1",
	score=None,
	status: SubmissionStatus = SubmissionStatus.PENDING,
	feedback=None,
) -> Assignment:
	return Assignment(
		assignment_id=assignment_id,
		meeting_id=meeting_id,
		title=f"Assignment {assignment_id}",
		due_at=due_at,
		score=score,
		feedback=feedback,
		submission_status=status,
	)


def make_session(number: int, when: datetime, assignments=(), topic=None) -> Session:
	return Session(
		session_number=number,
		meeting=Meeting(id=f"m{number}", date=when),
		assignments=tuple(assignments),
		covered_topic=topic,
	)


@pytest.fixture
def client():
	"""A client whose every endpoint answers with empty data."""
	client = MagicMock()
	client.get_meetings = AsyncMock(return_value=[])
	client.get_class_meetings = AsyncMock(return_value=[])
	client.get_covered_topic = AsyncMock(side_effect=LearnPathAPIError("GET covered-topic failed: HTTP 404", status=404))
	client.get_attendance_report = AsyncMock(return_value={"classSummaries": []})
	client.get_course_attendance_summary = AsyncMock(return_value={"sessionRecords": []})
	client.get_course_assignments = AsyncMock(return_value={"assignments": []})
	client.get_student_classes = AsyncMock(return_value=[])
	client.get_meeting_assignments = AsyncMock(return_value=[])
	return client
