"""Data models for LearnPath entities."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .const import (
	DEFAULT_WINDOW_SESSIONS,
	DEFAULT_WINDOW_WEEKS,
	MILESTONE_KEYWORDS,
	WINDOW_LAST_SESSIONS,
	WINDOW_LAST_WEEKS,
)
from .exceptions import LearnPathDataError
from .utils import parse_instant, parse_optional_instant, slot_time_range


class AttendanceStatus(str, Enum):
	"""Attendance state of one student at one meeting."""
	PRESENT = "Present"
	ABSENT = "Absent"
	NOT_MARKED = "NotMarked"

	@classmethod
	def parse(cls, value: Any) -> "AttendanceStatus":
		text = str(value or "").strip().lower()
		if text == "present":
			return cls.PRESENT
		if text == "absent":
			return cls.ABSENT
		return cls.NOT_MARKED


class SubmissionStatus(str, Enum):
	"""Submission state reported by the course details endpoint."""
	PENDING = "PENDING"
	SUBMITTED = "SUBMITTED"
	GRADED = "GRADED"

	@classmethod
	def parse(cls, value: Any) -> Optional["SubmissionStatus"]:
		text = str(value or "").strip().upper()
		for member in cls:
			if member.value == text:
				return member
		return None


class AssignmentState(str, Enum):
	COMPLETED = "completed"
	OVERDUE = "overdue"
	PENDING = "pending"


class WarningLevel(str, Enum):
	MEDIUM = "medium"
	HIGH = "high"


@dataclass(frozen=True)
class Meeting:
	"""A single class meeting as fetched from the schedule."""
	id: str
	date: datetime
	slot: Optional[str] = None

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "Meeting":
		if not isinstance(data, dict):
			raise LearnPathDataError(f"Meeting must be an object, got {type(data).__name__}")
		meeting_id = data.get("id") or data.get("meetingId") or data.get("classMeetingsId")
		if not meeting_id:
			raise LearnPathDataError(f"Meeting without id: {data!r}")
		raw_date = data.get("date") or data.get("startsAt") or data.get("meetingDate")
		return cls(id=str(meeting_id), date=parse_instant(raw_date), slot=data.get("slot"))

	@property
	def time_range(self) -> Tuple[str, str]:
		return slot_time_range(self.slot)

	def __str__(self) -> str:
		return f"Meeting {self.id} - {self.date.strftime('%Y-%m-%d')}"


@dataclass(frozen=True)
class ScheduledMeeting:
	"""A meeting placed in the normalized schedule."""
	session_number: int
	meeting: Meeting


@dataclass(frozen=True)
class AttendanceSignal:
	"""One attendance record for a meeting, from one of the two sources."""
	meeting_id: str
	status: AttendanceStatus
	notes: Optional[str] = None
	checked_by: Optional[str] = None
	meeting_date: Optional[datetime] = None
	topic: Optional[str] = None
	source: Optional[str] = None

	@classmethod
	def from_dict(cls, record: Dict[str, Any], source: Optional[str] = None) -> "AttendanceSignal":
		"""Build a signal from either the per-class report or the course summary shape."""
		if not isinstance(record, dict):
			raise LearnPathDataError(f"Attendance record must be an object, got {type(record).__name__}")
		meeting = record.get("meeting") or {}
		meeting_id = record.get("meetingId") or meeting.get("id")
		if not meeting_id:
			raise LearnPathDataError(f"Attendance record without meeting id: {record!r}")
		return cls(
			meeting_id=str(meeting_id),
			status=AttendanceStatus.parse(record.get("status") or record.get("attendanceStatus")),
			notes=record.get("notes"),
			checked_by=record.get("checkedByName") or record.get("checkedBy"),
			meeting_date=parse_optional_instant(
				meeting.get("startsAt") or meeting.get("date") or record.get("meetingDate")
			),
			topic=meeting.get("coveredTopic") or record.get("topicTitle") or None,
			source=source,
		)

	@property
	def is_present(self) -> bool:
		return self.status is AttendanceStatus.PRESENT


@dataclass(frozen=True)
class Assignment:
	"""An assignment together with the student's submission state."""
	assignment_id: str
	meeting_id: Optional[str]
	title: str
	due_at: datetime
	submitted_at: Optional[datetime] = None
	score: Optional[float] = None
	feedback: Optional[str] = None
	submission_status: SubmissionStatus = SubmissionStatus.PENDING
	store_url: Optional[str] = None

	@classmethod
	def from_dict(cls, item: Dict[str, Any], meeting_id: Optional[str] = None) -> "Assignment":
		"""Build an assignment from a course-details item or a per-meeting item.

		Per-meeting items carry their submission in ``submissions[0]``.
		"""
		if not isinstance(item, dict):
			raise LearnPathDataError(f"Assignment must be an object, got {type(item).__name__}")
		assignment_id = item.get("assignmentId") or item.get("id")
		if not assignment_id:
			raise LearnPathDataError(f"Assignment without id: {item!r}")

		submissions = item.get("submissions") or []
		submission = submissions[0] if submissions and isinstance(submissions[0], dict) else {}

		score = item.get("score")
		if score is None:
			score = submission.get("score")
		feedback = item.get("feedback")
		if feedback is None:
			feedback = submission.get("feedback")

		status = SubmissionStatus.parse(item.get("submissionStatus"))
		if status is None:
			if score is not None:
				status = SubmissionStatus.GRADED
			elif submission:
				status = SubmissionStatus.SUBMITTED
			else:
				status = SubmissionStatus.PENDING

		owner = meeting_id or item.get("meetingId") or item.get("classMeetingId")
		try:
			numeric_score = float(score) if score is not None else None
		except (TypeError, ValueError) as e:
			raise LearnPathDataError(f"Invalid score for assignment {assignment_id}: {score!r}") from e

		return cls(
			assignment_id=str(assignment_id),
			meeting_id=str(owner) if owner else None,
			title=item.get("title") or "",
			due_at=parse_instant(item.get("dueAt") or item.get("dueDate")),
			submitted_at=parse_optional_instant(item.get("submittedAt") or submission.get("createdAt")),
			score=numeric_score,
			feedback=feedback,
			submission_status=status,
			store_url=item.get("storeUrl") or submission.get("storeUrl"),
		)

	@property
	def file_stored(self) -> bool:
		"""Whether a submission file is on record for this assignment."""
		return bool(self.store_url) or self.submission_status in (
			SubmissionStatus.SUBMITTED,
			SubmissionStatus.GRADED,
		)

	@property
	def is_completed(self) -> bool:
		return self.score is not None or self.file_stored

	def is_overdue(self, now: datetime) -> bool:
		return self.due_at < now and not self.file_stored

	def __str__(self) -> str:
		return f"{self.title} (due {self.due_at.strftime('%Y-%m-%d')})"


@dataclass(frozen=True)
class Session:
	"""A meeting on the student's timeline with its topic and assignments."""
	session_number: int
	meeting: Meeting
	assignments: Tuple[Assignment, ...] = ()
	covered_topic: Optional[str] = None
	is_completed: bool = False

	@property
	def id(self) -> str:
		return self.meeting.id

	@property
	def date(self) -> datetime:
		return self.meeting.date

	@property
	def is_milestone(self) -> bool:
		"""Check if the covered topic names an exam, mock, test or assessment."""
		if not self.covered_topic:
			return False
		title = self.covered_topic.lower()
		return any(keyword in title for keyword in MILESTONE_KEYWORDS)

	@property
	def best_score(self) -> Optional[float]:
		scores = [a.score for a in self.assignments if a.score is not None]
		return max(scores) if scores else None


@dataclass(frozen=True)
class Milestone:
	session_number: int
	title: str
	description: str
	date: datetime


@dataclass(frozen=True)
class WindowMode:
	"""Scope of sessions that progress metrics are computed over."""
	kind: str
	size: int

	@classmethod
	def last_n_weeks(cls, n: int = DEFAULT_WINDOW_WEEKS) -> "WindowMode":
		return cls(WINDOW_LAST_WEEKS, n)

	@classmethod
	def last_n_sessions(cls, n: int = DEFAULT_WINDOW_SESSIONS) -> "WindowMode":
		return cls(WINDOW_LAST_SESSIONS, n)

	@classmethod
	def parse(cls, value: str) -> "WindowMode":
		"""Parse the short form used by the dashboard ("4w", "8s")."""
		text = (value or "").strip().lower()
		try:
			size = int(text[:-1])
		except ValueError as e:
			raise ValueError(f"Invalid window mode: {value!r}") from e
		if text.endswith("w"):
			return cls.last_n_weeks(size)
		if text.endswith("s"):
			return cls.last_n_sessions(size)
		raise ValueError(f"Invalid window mode: {value!r}")

	def __str__(self) -> str:
		return f"{self.size}{'w' if self.kind == WINDOW_LAST_WEEKS else 's'}"


@dataclass(frozen=True)
class WeeklyScore:
	label: str
	score: float


@dataclass(frozen=True)
class ProgressMetrics:
	"""Completion and risk figures for a window of sessions."""
	completion_rate: float
	pending_count: int
	overdue_count: int
	weekly_scores: Tuple[WeeklyScore, ...] = ()
	warning_level: Optional[WarningLevel] = None
	total_count: int = 0
	completed_count: int = 0


@dataclass(frozen=True)
class StudentClass:
	"""A class the student is enrolled in."""
	id: str
	class_name: Optional[str] = None
	course_code: Optional[str] = None
	course_id: Optional[str] = None

	@classmethod
	def from_dict(cls, data: Dict[str, Any]) -> "StudentClass":
		if not isinstance(data, dict):
			raise LearnPathDataError(f"Class must be an object, got {type(data).__name__}")
		class_id = data.get("id") or data.get("classId")
		if not class_id:
			raise LearnPathDataError(f"Class without id: {data!r}")
		return cls(
			id=str(class_id),
			class_name=data.get("className"),
			course_code=data.get("courseCode"),
			course_id=data.get("courseId"),
		)
