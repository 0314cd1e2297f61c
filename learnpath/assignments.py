"""Assignment aggregation for one course, grouped by meeting."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .exceptions import LearnPathDataError
from .models import Assignment, AssignmentState, ScheduledMeeting
from .utils import parse_instant

_LOGGER = logging.getLogger(__name__)


def classify_assignment(assignment: Assignment, now: datetime) -> AssignmentState:
	"""Completed if scored or a file is stored, overdue if past due without a file."""
	if assignment.is_completed:
		return AssignmentState.COMPLETED
	if assignment.is_overdue(now):
		return AssignmentState.OVERDUE
	return AssignmentState.PENDING


@dataclass(frozen=True)
class AssignmentIndex:
	"""Assignments of one course keyed by meeting id."""
	by_meeting: Dict[str, Tuple[Assignment, ...]] = field(default_factory=dict)
	meeting_order: Tuple[str, ...] = ()

	def for_meeting(self, meeting_id: str) -> Tuple[Assignment, ...]:
		return self.by_meeting.get(meeting_id, ())

	@property
	def assignments(self) -> List[Assignment]:
		return [a for meeting_id in self.meeting_order for a in self.by_meeting[meeting_id]]

	def __len__(self) -> int:
		return sum(len(group) for group in self.by_meeting.values())


def parse_assignment_groups(groups: Iterable[Any]) -> AssignmentIndex:
	"""Parse ``[{meetingId, meetingDate, assignments: [...]}]`` into an index.

	Groups are ordered by meeting date. Any malformed entry fails the whole
	batch with LearnPathDataError.
	"""
	parsed: List[Tuple[datetime, str, List[Assignment]]] = []
	for group in groups or []:
		if not isinstance(group, dict) or not group.get("meetingId"):
			raise LearnPathDataError(f"Assignment group without meeting id: {group!r}")
		meeting_id = str(group["meetingId"])
		items = [Assignment.from_dict(item, meeting_id=meeting_id) for item in group.get("assignments") or []]
		parsed.append((parse_instant(group.get("meetingDate")), meeting_id, items))

	parsed.sort(key=lambda entry: entry[0])

	by_meeting: Dict[str, List[Assignment]] = {}
	for _, meeting_id, items in parsed:
		by_meeting.setdefault(meeting_id, []).extend(items)
	return AssignmentIndex(
		by_meeting={meeting_id: tuple(items) for meeting_id, items in by_meeting.items()},
		meeting_order=tuple(by_meeting),
	)


async def fetch_course_assignments(client: Any, student_id: str, course_id: Optional[str]) -> AssignmentIndex:
	"""Fetch every assignment of the course in one batch call.

	Any failure, whether transport or a half-readable payload, degrades to an
	empty index; there are no partial merges.
	"""
	if not course_id:
		_LOGGER.warning("Course ID not available, skipping assignment fetch")
		return AssignmentIndex()

	try:
		details = await client.get_course_assignments(student_id, course_id)
		index = parse_assignment_groups((details or {}).get("assignments"))
	except Exception as e:
		_LOGGER.warning(f"Error fetching course assignments for {course_id}/{student_id}: {e}")
		return AssignmentIndex()

	_LOGGER.debug(f"Retrieved {len(index)} assignments over {len(index.meeting_order)} meetings for course {course_id}")
	return index


def cross_check_order(index: AssignmentIndex, schedule: Sequence[ScheduledMeeting]) -> List[str]:
	"""Compare the batch's meeting order with the schedule, by meeting id.

	Returns the meeting ids of the batch that are not in the schedule; their
	assignments cannot be attached to any session.
	"""
	positions = {item.meeting.id: index for index, item in enumerate(schedule)}
	unknown = [meeting_id for meeting_id in index.meeting_order if meeting_id not in positions]
	if unknown:
		_LOGGER.warning(f"Assignments reference unscheduled meetings: {unknown}")

	known = [positions[meeting_id] for meeting_id in index.meeting_order if meeting_id in positions]
	if known != sorted(known):
		_LOGGER.info("Assignment meeting order differs from schedule order; merging by meeting id")
	return unknown
