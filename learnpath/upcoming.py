"""Upcoming assignments across all of a student's classes.

Fetching them means one request for the classes, one per class for its
meetings and one per meeting for its assignments. Several widgets ask for the
same list at once, so results are shared two ways:

- single flight: concurrent calls for the same (student, limit) await one
  computation instead of starting their own;
- TTL cache: a successful result is served without I/O until it is older
  than the TTL (two minutes by default).
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from .const import DEFAULT_FANOUT_CONCURRENCY, DEFAULT_UPCOMING_LIMIT, DEFAULT_UPCOMING_TTL
from .models import Assignment, Meeting, StudentClass
from .utils import gather_bounded, utcnow

_LOGGER = logging.getLogger(__name__)

CacheKey = Tuple[str, int]


class UpcomingAssignmentsCache:
	"""Request-coalescing, TTL-caching fan-out for upcoming assignments.

	Meant to be owned by one long-lived service and passed to its users, so
	tests can inject their own clocks and start from an empty cache.
	"""

	def __init__(
		self,
		client: Any,
		ttl: float = DEFAULT_UPCOMING_TTL.total_seconds(),
		concurrency: int = DEFAULT_FANOUT_CONCURRENCY,
		clock: Callable[[], float] = time.monotonic,
		now: Callable[[], datetime] = utcnow,
	) -> None:
		self.client = client
		self.ttl = ttl
		self._concurrency = max(1, concurrency)
		self._clock = clock
		self._now = now
		self._pending: Dict[CacheKey, "asyncio.Task[List[Assignment]]"] = {}
		self._results: Dict[CacheKey, Tuple[float, List[Assignment]]] = {}

	async def get_upcoming_assignments(self, student_id: str, limit: int = DEFAULT_UPCOMING_LIMIT) -> List[Assignment]:
		"""Return the student's nearest future assignments, soonest first."""
		if limit < 0:
			raise ValueError(f"limit must not be negative, got {limit}")
		key = (str(student_id), int(limit))

		# Check-and-register has no suspension point, so it is atomic
		task = self._pending.get(key)
		if task is None:
			cached = self._results.get(key)
			if cached is not None and self._clock() - cached[0] < self.ttl:
				_LOGGER.debug(f"Serving cached upcoming assignments for student {student_id}")
				return list(cached[1])

			task = asyncio.ensure_future(self._compute(key))
			self._pending[key] = task
		else:
			_LOGGER.debug(f"Joining in-flight upcoming assignments fetch for student {student_id}")

		# A cancelled caller must not cancel the computation others share
		return list(await asyncio.shield(task))

	def invalidate(self, student_id: Optional[str] = None) -> None:
		"""Drop cached results for one student, or for everyone."""
		if student_id is None:
			self._results.clear()
			return
		for key in [k for k in self._results if k[0] == str(student_id)]:
			del self._results[key]

	def is_in_flight(self, student_id: str, limit: int = DEFAULT_UPCOMING_LIMIT) -> bool:
		return (str(student_id), int(limit)) in self._pending

	async def _compute(self, key: CacheKey) -> List[Assignment]:
		try:
			result = await self._fan_out(*key)
			self._results[key] = (self._clock(), result)
			return result
		finally:
			self._pending.pop(key, None)

	async def _fan_out(self, student_id: str, limit: int) -> List[Assignment]:
		semaphore = asyncio.Semaphore(self._concurrency)

		classes = self._parse_classes(await self.client.get_student_classes(student_id))
		meeting_lists = await gather_bounded(semaphore, classes, self._class_meetings)
		meetings = [meeting for group in meeting_lists for meeting in group]

		async def meeting_assignments(meeting: Meeting) -> List[Assignment]:
			return await self._meeting_assignments(meeting, student_id)

		assignment_lists = await gather_bounded(semaphore, meetings, meeting_assignments)

		now = self._now()
		upcoming = [a for group in assignment_lists for a in group if a.due_at > now]
		upcoming.sort(key=lambda a: a.due_at)

		_LOGGER.debug(
			f"Found {len(upcoming)} upcoming assignments for student {student_id} "
			f"across {len(classes)} classes and {len(meetings)} meetings"
		)
		return upcoming[:limit]

	@staticmethod
	def _parse_classes(raw: Any) -> List[StudentClass]:
		classes = []
		for item in raw or []:
			try:
				classes.append(StudentClass.from_dict(item))
			except Exception as e:
				_LOGGER.warning(f"Skipping malformed class entry: {e}")
		return classes

	async def _class_meetings(self, student_class: StudentClass) -> List[Meeting]:
		try:
			raw = await self.client.get_class_meetings(student_class.id)
			return [Meeting.from_dict(item) for item in raw or []]
		except Exception as e:
			_LOGGER.warning(f"Error fetching meetings for class {student_class.id}: {e}")
			return []

	async def _meeting_assignments(self, meeting: Meeting, student_id: str) -> List[Assignment]:
		try:
			raw = await self.client.get_meeting_assignments(meeting.id, student_id)
			return [Assignment.from_dict(item, meeting_id=meeting.id) for item in raw or []]
		except Exception as e:
			_LOGGER.warning(f"Error fetching assignments for meeting {meeting.id}: {e}")
			return []
