"""End-to-end tests for session timeline resolution."""

import pytest

from learnpath.attendance import prefer_course_summary
from learnpath.const import LOAD_FAILED_MESSAGE
from learnpath.exceptions import LearnPathAPIError, LearnPathConnectionError, SessionLoadError
from learnpath.models import WarningLevel, WindowMode
from learnpath.timeline import SessionTimelineService

from .conftest import day, iso, meeting_payload


@pytest.fixture
def academy(client):
	"""A class with three weekly meetings; the student attended the first."""
	client.get_meetings.return_value = [
		meeting_payload("m3", day(15)),
		meeting_payload("m1", day(1)),
		meeting_payload("m2", day(8), slot="13:30"),
	]
	client.get_attendance_report.return_value = {
		"classSummaries": [
			{"classId": "c-1", "records": [{"meetingId": "m1", "status": "Present"}]},
		]
	}
	client.get_course_attendance_summary.return_value = {
		"sessionRecords": [
			{"meetingId": "m1", "status": "Absent"},
			{"meetingId": "m2", "status": "Absent", "topicTitle": "Fractions"},
		]
	}

	async def covered_topic(meeting_id):
		if meeting_id == "m1":
			return {"topicTitle": "Introduction"}
		raise LearnPathAPIError("GET covered-topic failed: HTTP 404", status=404)

	client.get_covered_topic.side_effect = covered_topic
	client.get_course_assignments.return_value = {
		"assignments": [
			{"meetingId": "m1", "meetingDate": iso(day(1)), "assignments": [
				{"assignmentId": "a1", "title": "Warm-up", "dueAt": iso(day(3)), "score": 85},
			]},
			{"meetingId": "m2", "meetingDate": iso(day(8)), "assignments": [
				{"assignmentId": "a2", "title": "Fractions sheet", "dueAt": iso(day(12))},
			]},
		]
	}
	return client


def service_for(client, **kwargs):
	return SessionTimelineService(client, now=lambda: day(10), **kwargs)


class TestResolveSessions:

	async def test_merges_all_sources(self, academy):
		timeline = await service_for(academy).resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert [s.id for s in timeline.sessions] == ["m1", "m2", "m3"]
		assert [s.session_number for s in timeline.sessions] == [1, 2, 3]
		assert [s.covered_topic for s in timeline.sessions] == ["Introduction", "Fractions", None]
		assert [len(s.assignments) for s in timeline.sessions] == [1, 1, 0]
		assert [s.is_completed for s in timeline.sessions] == [True, False, False]
		assert timeline.sessions[1].meeting.time_range == ("13:30", "15:00")

	async def test_current_session_follows_last_attended(self, academy):
		timeline = await service_for(academy).resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert timeline.current_index == 1
		assert timeline.current_session.id == "m2"
		assert timeline.attendance.signals["m1"].is_present

	async def test_attendance_policy_is_configurable(self, academy):
		service = service_for(academy, policy=prefer_course_summary)

		timeline = await service.resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert timeline.current_index == 0
		assert timeline.attendance.present_count == 0

	async def test_catalog_fills_missing_topics(self, academy):
		service = service_for(academy, topic_catalog={"c-1": ["Intro", "Fractions", "Decimals"]})

		timeline = await service.resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert timeline.sessions[2].covered_topic == "Decimals"

	async def test_failing_sources_degrade_to_empty(self, academy):
		academy.get_attendance_report.side_effect = LearnPathConnectionError("Timed out")
		academy.get_course_attendance_summary.side_effect = LearnPathConnectionError("Timed out")
		academy.get_course_assignments.side_effect = LearnPathConnectionError("Timed out")

		timeline = await service_for(academy).resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert len(timeline.sessions) == 3
		assert timeline.current_index == 0
		assert all(not s.assignments for s in timeline.sessions)
		# Without assignments a session is completed once its date has passed
		assert [s.is_completed for s in timeline.sessions] == [True, True, False]

	async def test_no_meetings_gives_empty_timeline(self, client):
		timeline = await service_for(client).resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert timeline.sessions == ()
		assert timeline.current_index == -1
		assert timeline.current_session is None

	async def test_malformed_meeting_raises_session_load_error(self, academy):
		academy.get_meetings.return_value = [{"id": "m1", "date": None}]

		with pytest.raises(SessionLoadError) as excinfo:
			await service_for(academy).resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert str(excinfo.value) == LOAD_FAILED_MESSAGE
		assert excinfo.value.class_id == "c-1"

	async def test_missing_student_raises_session_load_error(self, academy):
		with pytest.raises(SessionLoadError):
			await service_for(academy).resolve_sessions("c-1", "", course_id="course-1")

	async def test_retry_after_failure_succeeds(self, academy):
		service = service_for(academy)
		academy.get_meetings.return_value = [{"id": "m1"}]
		with pytest.raises(SessionLoadError):
			await service.resolve_sessions("c-1", "stu-1", course_id="course-1")

		academy.get_meetings.return_value = [meeting_payload("m1", day(1))]
		timeline = await service.resolve_sessions("c-1", "stu-1", course_id="course-1")

		assert [s.id for s in timeline.sessions] == ["m1"]


class TestTimelineMetrics:

	async def test_metrics_and_milestones(self, academy):
		service = service_for(academy)
		timeline = await service.resolve_sessions("c-1", "stu-1", course_id="course-1")

		metrics = service.compute_metrics(timeline.sessions, WindowMode.last_n_sessions(8))
		milestones = service.milestones(timeline)

		assert metrics.completion_rate == 50.0
		assert metrics.pending_count == 1
		assert metrics.overdue_count == 0
		assert [p.score for p in metrics.weekly_scores] == [85, 0, 0]
		assert metrics.warning_level is WarningLevel.HIGH
		assert [m.title for m in milestones] == ["First Session"]
