"""Session timeline resolution for one enrollment in one class."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .assignments import AssignmentIndex, cross_check_order, fetch_course_assignments
from .attendance import (
	AttendancePolicy,
	AttendanceReconciliation,
	fetch_class_report,
	fetch_course_summary,
	prefer_class_report,
	reconcile_attendance,
)
from .const import DEFAULT_FANOUT_CONCURRENCY, LOAD_FAILED_MESSAGE
from .exceptions import LearnPathError, SessionLoadError
from .metrics import compute_metrics, find_milestones
from .models import Assignment, Milestone, ProgressMetrics, ScheduledMeeting, Session, WindowMode
from .schedule import fetch_meetings, normalize_schedule, resolve_current_index
from .topics import TopicContext, TopicResolver, build_topic_resolver
from .utils import utcnow

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionTimeline:
	"""Ordered sessions for one enrollment plus the current session index."""
	sessions: Tuple[Session, ...]
	current_index: int
	attendance: AttendanceReconciliation = field(default_factory=lambda: AttendanceReconciliation(signals={}))

	@property
	def current_session(self) -> Optional[Session]:
		if 0 <= self.current_index < len(self.sessions):
			return self.sessions[self.current_index]
		return None


class SessionTimelineService:
	"""Merge schedule, attendance, topics and assignments into a timeline.

	Each call builds a fresh, immutable timeline; the service keeps no state
	between calls, so concurrent calls for different classes are independent.
	"""

	def __init__(
		self,
		client: Any,
		topic_resolver: Optional[TopicResolver] = None,
		topic_catalog: Optional[Mapping[str, Sequence[str]]] = None,
		policy: AttendancePolicy = prefer_class_report,
		concurrency: int = DEFAULT_FANOUT_CONCURRENCY,
		now: Callable[[], datetime] = utcnow,
	) -> None:
		self.client = client
		self.topic_resolver = topic_resolver or build_topic_resolver(client, topic_catalog)
		self.policy = policy
		self._concurrency = max(1, concurrency)
		self._now = now

	async def resolve_sessions(
		self,
		class_id: str,
		student_id: str,
		course_id: Optional[str] = None,
		class_name: Optional[str] = None,
		course_code: Optional[str] = None,
	) -> SessionTimeline:
		"""Resolve the ordered sessions and the current session index.

		Failures of individual sources degrade to empty data. Anything else
		raises SessionLoadError; calling again is the retry.
		"""
		try:
			return await self._resolve(class_id, student_id, course_id, class_name, course_code)
		except Exception as err:
			_LOGGER.exception(f"Error fetching class sessions for class {class_id}")
			raise SessionLoadError(LOAD_FAILED_MESSAGE, class_id=class_id) from err

	async def _resolve(
		self,
		class_id: str,
		student_id: str,
		course_id: Optional[str],
		class_name: Optional[str],
		course_code: Optional[str],
	) -> SessionTimeline:
		if not student_id:
			raise LearnPathError("Student ID not found")

		meetings, class_report, course_summary, assignments = await asyncio.gather(
			fetch_meetings(self.client, class_id),
			fetch_class_report(self.client, student_id, class_id, class_name, course_code),
			fetch_course_summary(self.client, course_id, student_id),
			fetch_course_assignments(self.client, student_id, course_id or course_code),
		)

		schedule = normalize_schedule(meetings)
		attendance = reconcile_attendance(schedule, class_report, course_summary, self.policy)
		cross_check_order(assignments, schedule)

		contexts = [
			TopicContext(
				class_id=class_id,
				meeting=item.meeting,
				session_number=item.session_number,
				attendance=attendance.signals.get(item.meeting.id),
			)
			for item in schedule
		]
		topics = await self.topic_resolver.resolve_all(contexts, asyncio.Semaphore(self._concurrency))

		now = self._now()
		sessions = tuple(
			self._build_session(item, topic, assignments, now)
			for item, topic in zip(schedule, topics)
		)
		current_index = resolve_current_index(schedule, attendance.last_attended)

		_LOGGER.debug(
			f"Resolved {len(sessions)} sessions for class {class_id} "
			f"(current: {current_index}, attended: {attendance.present_count}, "
			f"assignments: {len(assignments)})"
		)
		return SessionTimeline(sessions=sessions, current_index=current_index, attendance=attendance)

	def _build_session(
		self,
		item: ScheduledMeeting,
		topic: Optional[str],
		assignments: AssignmentIndex,
		now: datetime,
	) -> Session:
		try:
			owned: Tuple[Assignment, ...] = assignments.for_meeting(item.meeting.id)
			is_completed = all(a.is_completed for a in owned) if owned else item.meeting.date < now
			return Session(
				session_number=item.session_number,
				meeting=item.meeting,
				assignments=owned,
				covered_topic=topic,
				is_completed=is_completed,
			)
		except Exception as e:
			_LOGGER.error(f"Error processing session {item.meeting.id}: {e}")
			return Session(
				session_number=item.session_number,
				meeting=item.meeting,
				is_completed=item.meeting.date < now,
			)

	def compute_metrics(self, sessions: Sequence[Session], window: Optional[WindowMode] = None) -> ProgressMetrics:
		"""Metrics for the given window; recompute whenever either input changes."""
		return compute_metrics(sessions, window, now=self._now())

	@staticmethod
	def milestones(timeline: SessionTimeline) -> List[Milestone]:
		return find_milestones(timeline.sessions)
