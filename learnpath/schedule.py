"""Schedule normalization and current-session resolution."""

import logging
from typing import Any, Iterable, List, Optional, Sequence

from .models import AttendanceSignal, Meeting, ScheduledMeeting

_LOGGER = logging.getLogger(__name__)


async def fetch_meetings(client: Any, class_id: str) -> List[Meeting]:
	"""Fetch and parse the meetings of a class.

	A failed fetch yields an empty list. A payload that arrives but cannot be
	parsed is not recoverable here and propagates to the caller.
	"""
	try:
		raw = await client.get_meetings(class_id)
	except Exception as e:
		_LOGGER.warning(f"Error fetching meetings for class {class_id}: {e}")
		return []

	return [Meeting.from_dict(item) for item in raw or []]


def normalize_schedule(meetings: Iterable[Meeting]) -> List[ScheduledMeeting]:
	"""Order meetings by date and number them from 1.

	The sort is stable, so meetings sharing a date keep their fetch order.
	"""
	ordered = sorted(meetings, key=lambda meeting: meeting.date)
	return [ScheduledMeeting(session_number=index + 1, meeting=meeting) for index, meeting in enumerate(ordered)]


def resolve_current_index(
	schedule: Sequence[ScheduledMeeting],
	last_attended: Optional[AttendanceSignal],
) -> int:
	"""Pick the one session the student is currently working through.

	- nothing attended: the first session
	- otherwise the session after the last attended one
	- or the last attended one when it closes the schedule

	Returns -1 only for an empty schedule.
	"""
	if not schedule:
		return -1
	if last_attended is None:
		return 0

	last_index = next(
		(i for i, item in enumerate(schedule) if item.meeting.id == last_attended.meeting_id),
		None,
	)
	if last_index is None:
		# Reconciliation only keeps scheduled meetings; treat as not started
		_LOGGER.debug(f"Last attended meeting {last_attended.meeting_id} is not scheduled")
		return 0

	if last_index + 1 < len(schedule):
		return last_index + 1
	return last_index
