"""Covered-topic resolution through an ordered chain of lookups."""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .exceptions import LearnPathError
from .models import AttendanceSignal, Meeting
from .utils import gather_bounded

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicContext:
	"""Everything a lookup step may use to name one meeting's topic."""
	class_id: str
	meeting: Meeting
	session_number: int
	attendance: Optional[AttendanceSignal] = None


# A step returns the topic, or None to hand over to the next step
TopicStep = Callable[[TopicContext], Awaitable[Optional[str]]]


def covered_topic_step(client: Any) -> TopicStep:
	"""Ask the dedicated covered-topic endpoint."""

	async def lookup(context: TopicContext) -> Optional[str]:
		data = await client.get_covered_topic(context.meeting.id)
		return (data or {}).get("topicTitle") or None

	return lookup


async def attendance_topic_step(context: TopicContext) -> Optional[str]:
	"""Use the topic carried by the meeting's attendance record."""
	if context.attendance is None:
		return None
	return context.attendance.topic or None


def catalog_step(catalog: Mapping[str, Sequence[str]]) -> TopicStep:
	"""Use a static per-class list of known topics, indexed by session number."""

	async def lookup(context: TopicContext) -> Optional[str]:
		topics = catalog.get(context.class_id) or ()
		index = context.session_number - 1
		if 0 <= index < len(topics):
			return topics[index] or None
		return None

	return lookup


class TopicResolver:
	"""Try each named step in order and keep the first topic found.

	A step that raises is logged and skipped; resolution of one meeting never
	affects another.
	"""

	def __init__(self, steps: Sequence[Tuple[str, TopicStep]]) -> None:
		self.steps = list(steps)

	async def resolve(self, context: TopicContext) -> Optional[str]:
		for name, step in self.steps:
			try:
				topic = await step(context)
			except Exception as e:
				_LOGGER.debug(
					f"Topic step '{name}' failed for session {context.session_number} "
					f"(meeting {context.meeting.id}): {e}"
				)
				continue
			if topic:
				return topic
		return None

	async def resolve_all(
		self,
		contexts: Sequence[TopicContext],
		semaphore: Optional[asyncio.Semaphore] = None,
	) -> List[Optional[str]]:
		"""Resolve every context concurrently; results keep input order."""
		return await gather_bounded(semaphore or asyncio.Semaphore(max(len(contexts), 1)), contexts, self.resolve)


def build_topic_resolver(client: Any, catalog: Optional[Mapping[str, Sequence[str]]] = None) -> TopicResolver:
	"""The standard chain: covered-topic endpoint, attendance record, catalog."""
	return TopicResolver([
		("covered_topic", covered_topic_step(client)),
		("attendance", attendance_topic_step),
		("catalog", catalog_step(catalog or {})),
	])


def load_topic_catalog(path: Union[str, Path]) -> Dict[str, List[str]]:
	"""Load a ``{classId: [topic, ...]}`` JSON file."""
	try:
		data = json.loads(Path(path).read_text(encoding="utf-8"))
	except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
		raise LearnPathError(f"Cannot read topic catalog {path}: {e}") from e

	if not isinstance(data, dict):
		raise LearnPathError(f"Topic catalog {path} must map class ids to topic lists")
	catalog: Dict[str, List[str]] = {}
	for class_id, topics in data.items():
		if isinstance(topics, list):
			catalog[str(class_id)] = [str(t) if t else "" for t in topics]
	return catalog
