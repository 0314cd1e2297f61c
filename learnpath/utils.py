"""Parsing and concurrency helpers shared across the engine."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from .const import DEFAULT_SLOT_RANGE, SLOT_DURATION_MINUTES
from .exceptions import LearnPathDataError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Formats seen from the upstream services besides plain ISO-8601
_DATE_FORMATS = [
	"%Y-%m-%dT%H:%M:%S.%f",
	"%Y-%m-%dT%H:%M:%S",
	"%Y-%m-%d %H:%M:%S",
	"%Y-%m-%d",
	"%d/%m/%Y",
	"%d.%m.%Y",
]


def utcnow() -> datetime:
	"""Return the current instant as an aware UTC datetime."""
	return datetime.now(timezone.utc)


def parse_instant(value: Any) -> datetime:
	"""Parse an upstream date value into an aware UTC datetime.

	Naive values are taken to be UTC. Raises LearnPathDataError when the
	value is missing or matches no known format.
	"""
	if isinstance(value, datetime):
		parsed = value
	elif isinstance(value, str) and value.strip():
		text = value.strip()
		if text.endswith("Z"):
			text = text[:-1] + "+00:00"
		try:
			parsed = datetime.fromisoformat(text)
		except ValueError:
			parsed = None
			for fmt in _DATE_FORMATS:
				try:
					parsed = datetime.strptime(text, fmt)
					break
				except ValueError:
					continue
			if parsed is None:
				raise LearnPathDataError(f"Unrecognised date value: {value!r}")
	else:
		raise LearnPathDataError(f"Missing date value: {value!r}")

	if parsed.tzinfo is None:
		return parsed.replace(tzinfo=timezone.utc)
	return parsed.astimezone(timezone.utc)


def parse_optional_instant(value: Any) -> Optional[datetime]:
	"""Like parse_instant, but missing or unparseable values become None."""
	if value in (None, ""):
		return None
	try:
		return parse_instant(value)
	except LearnPathDataError:
		_LOGGER.debug(f"Ignoring unparseable date: {value!r}")
		return None


def slot_time_range(slot: Optional[str]) -> Tuple[str, str]:
	"""Return the (start, end) "HH:MM" pair for a meeting slot.

	A slot lasts 90 minutes and wraps past midnight.
	"""
	if not slot or not isinstance(slot, str):
		_LOGGER.debug(f"Invalid time slot value: {slot!r}")
		return DEFAULT_SLOT_RANGE

	parts = slot.strip().split(":")
	try:
		hours = int(parts[0])
		minutes = int(parts[1])
	except (IndexError, ValueError):
		_LOGGER.debug(f"Invalid time slot format: {slot!r}")
		return DEFAULT_SLOT_RANGE

	start = f"{hours:02d}:{minutes:02d}"
	total = hours * 60 + minutes + SLOT_DURATION_MINUTES
	end = f"{(total // 60) % 24:02d}:{total % 60:02d}"
	return start, end


async def gather_bounded(
	semaphore: asyncio.Semaphore,
	items: Iterable[T],
	worker: Callable[[T], Awaitable[Any]],
) -> List[Any]:
	"""Run worker over items concurrently, at most semaphore-many at a time.

	All tasks are started before any is awaited; results keep input order.
	Workers are expected to handle their own failures.
	"""

	async def _run(item: T) -> Any:
		async with semaphore:
			return await worker(item)

	return list(await asyncio.gather(*(_run(item) for item in items)))
