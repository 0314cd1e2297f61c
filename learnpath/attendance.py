"""Attendance reconciliation across the two attendance sources.

Source A is the class entry of the student's cross-class attendance report.
Source B is the per-course attendance summary. Both describe the same
meetings but are produced independently, so a meeting may be marked in
either, both, or neither, and the two may disagree.

Which source wins a disagreement is an explicit policy passed to
``reconcile_attendance``. The default, ``prefer_class_report``, lets source A
win; ``prefer_course_summary`` is the opposite choice.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .exceptions import LearnPathDataError
from .models import AttendanceSignal, AttendanceStatus, ScheduledMeeting

_LOGGER = logging.getLogger(__name__)

SOURCE_CLASS_REPORT = "class_report"
SOURCE_COURSE_SUMMARY = "course_summary"

AttendancePolicy = Callable[[Optional[AttendanceSignal], Optional[AttendanceSignal]], Optional[AttendanceSignal]]


def prefer_class_report(
	class_report: Optional[AttendanceSignal],
	course_summary: Optional[AttendanceSignal],
) -> Optional[AttendanceSignal]:
	"""Source A wins whenever it has a record for the meeting."""
	return class_report if class_report is not None else course_summary


def prefer_course_summary(
	class_report: Optional[AttendanceSignal],
	course_summary: Optional[AttendanceSignal],
) -> Optional[AttendanceSignal]:
	"""Source B wins whenever it has a record for the meeting."""
	return course_summary if course_summary is not None else class_report


@dataclass(frozen=True)
class AttendanceReconciliation:
	"""Merged attendance for one student in one class."""
	signals: Dict[str, AttendanceSignal]
	last_attended: Optional[AttendanceSignal] = None

	@property
	def present_count(self) -> int:
		return sum(1 for s in self.signals.values() if s.status is AttendanceStatus.PRESENT)

	@property
	def absent_count(self) -> int:
		return sum(1 for s in self.signals.values() if s.status is AttendanceStatus.ABSENT)

	@property
	def attendance_rate(self) -> float:
		marked = self.present_count + self.absent_count
		return self.present_count / marked * 100 if marked else 0.0

	def topic_for(self, meeting_id: str) -> Optional[str]:
		signal = self.signals.get(meeting_id)
		return signal.topic if signal else None


def parse_signals(records: Iterable[Any], source: str) -> List[AttendanceSignal]:
	"""Parse attendance records, skipping the ones without a meeting id."""
	signals = []
	for record in records or []:
		try:
			signals.append(AttendanceSignal.from_dict(record, source=source))
		except LearnPathDataError as e:
			_LOGGER.debug(f"Skipping attendance record from {source}: {e}")
	return signals


def _first_by_meeting(signals: Iterable[AttendanceSignal]) -> Dict[str, AttendanceSignal]:
	indexed: Dict[str, AttendanceSignal] = {}
	for signal in signals:
		indexed.setdefault(signal.meeting_id, signal)
	return indexed


def reconcile_attendance(
	schedule: Sequence[ScheduledMeeting],
	class_report: Iterable[AttendanceSignal],
	course_summary: Iterable[AttendanceSignal],
	policy: AttendancePolicy = prefer_class_report,
) -> AttendanceReconciliation:
	"""Merge both sources into one signal per scheduled meeting.

	Signals for meetings that are not in the schedule are dropped. The last
	attended signal is the Present one whose scheduled meeting is latest.
	"""
	by_a = _first_by_meeting(class_report)
	by_b = _first_by_meeting(course_summary)
	positions = {item.meeting.id: index for index, item in enumerate(schedule)}

	merged: Dict[str, AttendanceSignal] = {}
	for meeting_id in list(by_a) + [m for m in by_b if m not in by_a]:
		if meeting_id not in positions:
			_LOGGER.debug(f"Dropping attendance for unscheduled meeting {meeting_id}")
			continue
		chosen = policy(by_a.get(meeting_id), by_b.get(meeting_id))
		if chosen is not None:
			merged[meeting_id] = chosen

	attended = [s for s in merged.values() if s.is_present]
	attended.sort(
		key=lambda s: (schedule[positions[s.meeting_id]].meeting.date, positions[s.meeting_id]),
		reverse=True,
	)
	return AttendanceReconciliation(signals=merged, last_attended=attended[0] if attended else None)


def _match_class_summary(
	summaries: List[Dict[str, Any]],
	class_id: str,
	class_name: Optional[str],
	course_code: Optional[str],
) -> Optional[Dict[str, Any]]:
	for key, wanted in (("classId", class_id), ("className", class_name), ("courseCode", course_code)):
		if not wanted:
			continue
		for summary in summaries:
			if isinstance(summary, dict) and summary.get(key) == wanted:
				return summary
	return None


async def fetch_class_report(
	client: Any,
	student_id: str,
	class_id: str,
	class_name: Optional[str] = None,
	course_code: Optional[str] = None,
) -> List[AttendanceSignal]:
	"""Fetch source A: this class's records from the cross-class report."""
	try:
		report = await client.get_attendance_report(student_id)
		summaries = report.get("classSummaries") or []
		summary = _match_class_summary(summaries, class_id, class_name, course_code)
	except Exception as e:
		_LOGGER.warning(f"Error fetching attendance report for student {student_id}: {e}")
		return []

	if summary is None:
		_LOGGER.debug(f"No attendance summary for class {class_id} in report of student {student_id}")
		return []
	return parse_signals(summary.get("records"), SOURCE_CLASS_REPORT)


async def fetch_course_summary(client: Any, course_id: Optional[str], student_id: str) -> List[AttendanceSignal]:
	"""Fetch source B: the per-course session records."""
	if not course_id:
		return []
	try:
		summary = await client.get_course_attendance_summary(course_id, student_id)
		records = summary.get("sessionRecords") or []
	except Exception as e:
		_LOGGER.warning(f"Error fetching course attendance summary for {course_id}/{student_id}: {e}")
		return []
	return parse_signals(records, SOURCE_COURSE_SUMMARY)
