"""Debug command line for the LearnPath engine.

Usage:
	python -m learnpath timeline --class-id C --student-id S --course-id K [--window 8s|4w]
	python -m learnpath upcoming --student-id S [--limit 5]

Settings come from the environment or a .env file, for example:
	LEARNPATH_API_BASE_URL=https://academy.example.com
	LEARNPATH_API_TOKEN=...
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .client import LearnPathClient
from .config import Settings, load_settings
from .exceptions import LearnPathError
from .models import Assignment, ProgressMetrics, Session, WindowMode
from .timeline import SessionTimeline, SessionTimelineService
from .upcoming import UpcomingAssignmentsCache

_LOGGER = logging.getLogger(__name__)


def _assignment_to_dict(assignment: Assignment) -> Dict[str, Any]:
	return {
		"assignmentId": assignment.assignment_id,
		"meetingId": assignment.meeting_id,
		"title": assignment.title,
		"dueAt": assignment.due_at.isoformat(),
		"submittedAt": assignment.submitted_at.isoformat() if assignment.submitted_at else None,
		"score": assignment.score,
		"feedback": assignment.feedback,
		"submissionStatus": assignment.submission_status.value,
	}


def _session_to_dict(session: Session) -> Dict[str, Any]:
	start, end = session.meeting.time_range
	return {
		"sessionNumber": session.session_number,
		"meetingId": session.id,
		"date": session.date.isoformat(),
		"time": f"{start}-{end}",
		"coveredTopic": session.covered_topic,
		"isCompleted": session.is_completed,
		"isMilestone": session.is_milestone,
		"assignments": [_assignment_to_dict(a) for a in session.assignments],
	}


def _metrics_to_dict(metrics: ProgressMetrics) -> Dict[str, Any]:
	return {
		"completionRate": round(metrics.completion_rate, 1),
		"pendingCount": metrics.pending_count,
		"overdueCount": metrics.overdue_count,
		"weeklyScores": [{"label": p.label, "score": p.score} for p in metrics.weekly_scores],
		"warningLevel": metrics.warning_level.value if metrics.warning_level else None,
	}


def _timeline_to_dict(timeline: SessionTimeline, metrics: ProgressMetrics) -> Dict[str, Any]:
	return {
		"currentIndex": timeline.current_index,
		"attendanceRate": round(timeline.attendance.attendance_rate, 1),
		"sessions": [_session_to_dict(s) for s in timeline.sessions],
		"milestones": [
			{"sessionNumber": m.session_number, "title": m.title, "description": m.description}
			for m in SessionTimelineService.milestones(timeline)
		],
		"metrics": _metrics_to_dict(metrics),
	}


async def _run_timeline(settings: Settings, args: argparse.Namespace) -> Dict[str, Any]:
	async with LearnPathClient(settings.api_base_url, token=settings.api_token, timeout=settings.request_timeout) as client:
		service = SessionTimelineService(
			client,
			topic_catalog=settings.topic_catalog(),
			concurrency=settings.fanout_concurrency,
		)
		timeline = await service.resolve_sessions(args.class_id, args.student_id, args.course_id)
		metrics = service.compute_metrics(timeline.sessions, args.window)
		return _timeline_to_dict(timeline, metrics)


async def _run_upcoming(settings: Settings, args: argparse.Namespace) -> List[Dict[str, Any]]:
	async with LearnPathClient(settings.api_base_url, token=settings.api_token, timeout=settings.request_timeout) as client:
		cache = UpcomingAssignmentsCache(client, ttl=settings.upcoming_ttl, concurrency=settings.fanout_concurrency)
		assignments = await cache.get_upcoming_assignments(args.student_id, args.limit)
		return [_assignment_to_dict(a) for a in assignments]


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="learnpath", description="Inspect a student's learning path")
	sub = parser.add_subparsers(dest="command", required=True)

	timeline = sub.add_parser("timeline", help="Resolve sessions and progress metrics for one class")
	timeline.add_argument("--class-id", required=True)
	timeline.add_argument("--student-id", required=True)
	timeline.add_argument("--course-id")
	timeline.add_argument("--window", type=WindowMode.parse, default="8s", help="Metrics window: 8s (sessions) or 4w (weeks)")

	upcoming = sub.add_parser("upcoming", help="List upcoming assignments across all classes")
	upcoming.add_argument("--student-id", required=True)
	upcoming.add_argument("--limit", type=int, default=5)
	return parser


def main(argv: Optional[List[str]] = None) -> int:
	args = build_parser().parse_args(argv)
	try:
		settings = load_settings()
	except LearnPathError as e:
		print(f"❌ {e}", file=sys.stderr)
		return 2

	logging.basicConfig(
		level=getattr(logging, settings.log_level),
		format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
	)
	if not settings.api_base_url:
		print("❌ LEARNPATH_API_BASE_URL is not set", file=sys.stderr)
		return 2

	runner = _run_timeline if args.command == "timeline" else _run_upcoming
	try:
		result = asyncio.run(runner(settings, args))
	except LearnPathError as e:
		_LOGGER.error(f"{args.command} failed: {e}")
		return 1

	print(json.dumps(result, indent=2, ensure_ascii=False))
	return 0


if __name__ == "__main__":
	sys.exit(main())
