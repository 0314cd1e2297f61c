"""Progress metrics over a window of sessions."""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from .const import (
	FIRST_SESSION_DESCRIPTION,
	FIRST_SESSION_TITLE,
	LOW_COMPLETION_THRESHOLD,
	LOW_SCORE_THRESHOLD,
	MILESTONE_DEFAULT_DESCRIPTION,
	SCORE_DROP_SPAN,
	WINDOW_LAST_WEEKS,
)
from .models import Milestone, ProgressMetrics, Session, WarningLevel, WeeklyScore, WindowMode
from .utils import utcnow


def apply_window(sessions: Iterable[Session], window: WindowMode, now: datetime) -> List[Session]:
	"""Sort sessions by date and keep the ones inside the window.

	The weeks window keeps every session dated on or after the cutoff,
	upcoming ones included.
	"""
	ordered = sorted(sessions, key=lambda s: s.date)
	if window.kind == WINDOW_LAST_WEEKS:
		cutoff = now - timedelta(weeks=window.size)
		return [s for s in ordered if s.date >= cutoff]
	if window.size <= 0:
		return []
	return ordered[-window.size:]


def weekly_scores(sessions: Sequence[Session]) -> List[WeeklyScore]:
	"""Best score per session, 0 when nothing is scored, labelled W1..Wk."""
	points = []
	for index, session in enumerate(sessions):
		best = session.best_score
		points.append(WeeklyScore(label=f"W{index + 1}", score=best if best is not None else 0))
	return points


def _is_dropping(scores: Sequence[WeeklyScore]) -> bool:
	if len(scores) < SCORE_DROP_SPAN:
		return False
	tail = [point.score for point in scores[-SCORE_DROP_SPAN:]]
	return all(a > b for a, b in zip(tail, tail[1:]))


def classify_warning(
	scores: Sequence[WeeklyScore],
	completion_rate: float,
	has_assignments: bool = True,
) -> Optional[WarningLevel]:
	"""High when the last score and completion are both low, medium when
	either is low or scores fell over the last three sessions.

	An empty window never counts as low completion.
	"""
	low_completion = has_assignments and completion_rate < LOW_COMPLETION_THRESHOLD
	low_recent_score = bool(scores) and scores[-1].score < LOW_SCORE_THRESHOLD

	if low_recent_score and low_completion:
		return WarningLevel.HIGH
	if _is_dropping(scores) or low_recent_score or low_completion:
		return WarningLevel.MEDIUM
	return None


def compute_metrics(
	sessions: Iterable[Session],
	window: Optional[WindowMode] = None,
	now: Optional[datetime] = None,
) -> ProgressMetrics:
	"""Derive completion, pending/overdue counts, scores and warning level."""
	now = now or utcnow()
	scoped = apply_window(sessions, window or WindowMode.last_n_sessions(), now)

	assignments = [a for s in scoped for a in s.assignments]
	total = len(assignments)
	completed = sum(1 for a in assignments if a.is_completed)
	overdue = sum(1 for a in assignments if a.is_overdue(now))
	completion_rate = completed / total * 100 if total else 0.0

	scores = weekly_scores(scoped)
	return ProgressMetrics(
		completion_rate=completion_rate,
		pending_count=max(0, total - completed - overdue),
		overdue_count=overdue,
		weekly_scores=tuple(scores),
		warning_level=classify_warning(scores, completion_rate, has_assignments=total > 0),
		total_count=total,
		completed_count=completed,
	)


def find_milestones(sessions: Sequence[Session]) -> List[Milestone]:
	"""The first session plus every session whose topic is an assessment."""
	milestones = []
	for index, session in enumerate(sessions):
		if index == 0:
			milestones.append(Milestone(
				session_number=session.session_number,
				title=FIRST_SESSION_TITLE,
				description=FIRST_SESSION_DESCRIPTION,
				date=session.date,
			))
			continue
		if not session.is_milestone:
			continue

		description = MILESTONE_DEFAULT_DESCRIPTION
		scored = next((a for a in session.assignments if a.score is not None), None)
		if scored is not None:
			description = f"Score: {scored.score:g}%"
			if scored.feedback:
				description += " - Feedback available"
		milestones.append(Milestone(
			session_number=session.session_number,
			title=session.covered_topic or f"Session {session.session_number}",
			description=description,
			date=session.date,
		))
	return milestones
