"""Tests for the coalescing, TTL-cached upcoming assignments fan-out."""

import asyncio

import pytest

from learnpath.exceptions import LearnPathConnectionError
from learnpath.upcoming import UpcomingAssignmentsCache

from .conftest import day, iso


class FakeClock:

	def __init__(self, start: float = 1000.0) -> None:
		self.value = start

	def __call__(self) -> float:
		return self.value

	def advance(self, seconds: float) -> None:
		self.value += seconds


@pytest.fixture
def clock():
	return FakeClock()


@pytest.fixture
def enrolled(client):
	"""Two classes with one and two meetings; every meeting has assignments."""
	client.get_student_classes.return_value = [
		{"id": "c-1", "className": "Maths"},
		{"id": "c-2", "className": "Science"},
	]
	meetings = {
		"c-1": [{"id": "m1", "date": iso(day(1))}],
		"c-2": [{"id": "m2", "date": iso(day(2))}, {"id": "m3", "date": iso(day(9))}],
	}
	assignments = {
		"m1": [{"id": "a-past", "title": "Past", "dueAt": iso(day(5))},
			   {"id": "a-13", "title": "Essay", "dueAt": iso(day(13))}],
		"m2": [{"id": "a-11", "title": "Lab", "dueAt": iso(day(11))}],
		"m3": [{"id": "a-20", "title": "Quiz prep", "dueAt": iso(day(20)), "submissions": [{"score": 7}]},
			   {"id": "a-12", "title": "Reading", "dueAt": iso(day(12))}],
	}

	async def class_meetings(class_id):
		return meetings[class_id]

	async def meeting_assignments(meeting_id, student_id):
		return assignments[meeting_id]

	client.get_class_meetings.side_effect = class_meetings
	client.get_meeting_assignments.side_effect = meeting_assignments
	return client


def cache_for(client, clock, **kwargs):
	return UpcomingAssignmentsCache(client, clock=clock, now=lambda: day(10), **kwargs)


class TestUpcomingAssignments:

	async def test_future_only_sorted_and_limited(self, enrolled, clock):
		cache = cache_for(enrolled, clock)

		upcoming = await cache.get_upcoming_assignments("stu-1", limit=3)

		assert [a.assignment_id for a in upcoming] == ["a-11", "a-12", "a-13"]
		assert upcoming[0].meeting_id == "m2"
		enrolled.get_meeting_assignments.assert_any_await("m3", "stu-1")

	async def test_default_limit_is_five(self, enrolled, clock):
		upcoming = await cache_for(enrolled, clock).get_upcoming_assignments("stu-1")

		assert [a.assignment_id for a in upcoming] == ["a-11", "a-12", "a-13", "a-20"]

	async def test_zero_limit(self, enrolled, clock):
		assert await cache_for(enrolled, clock).get_upcoming_assignments("stu-1", limit=0) == []

	async def test_negative_limit_is_rejected(self, enrolled, clock):
		with pytest.raises(ValueError):
			await cache_for(enrolled, clock).get_upcoming_assignments("stu-1", limit=-1)

	async def test_failed_items_are_skipped(self, enrolled, clock):
		async def class_meetings(class_id):
			if class_id == "c-1":
				raise LearnPathConnectionError("Timed out")
			return [{"id": "m2", "date": iso(day(2))}]

		enrolled.get_class_meetings.side_effect = class_meetings

		upcoming = await cache_for(enrolled, clock).get_upcoming_assignments("stu-1")

		assert [a.assignment_id for a in upcoming] == ["a-11"]

	async def test_no_classes(self, client, clock):
		assert await cache_for(client, clock).get_upcoming_assignments("stu-1") == []
		client.get_class_meetings.assert_not_awaited()


class TestCoalescing:

	async def test_concurrent_calls_share_one_fetch(self, enrolled, clock):
		gate = asyncio.Event()

		async def classes(student_id):
			await gate.wait()
			return [{"id": "c-1"}]

		enrolled.get_student_classes.side_effect = classes
		cache = cache_for(enrolled, clock)

		first = asyncio.ensure_future(cache.get_upcoming_assignments("stu-1"))
		second = asyncio.ensure_future(cache.get_upcoming_assignments("stu-1"))
		await asyncio.sleep(0)
		assert cache.is_in_flight("stu-1")

		gate.set()
		a, b = await asyncio.gather(first, second)

		assert a == b
		assert [x.assignment_id for x in a] == ["a-13"]
		assert enrolled.get_student_classes.await_count == 1
		assert enrolled.get_class_meetings.await_count == 1
		assert not cache.is_in_flight("stu-1")

	async def test_different_limits_are_separate_requests(self, enrolled, clock):
		cache = cache_for(enrolled, clock)

		await asyncio.gather(
			cache.get_upcoming_assignments("stu-1", limit=1),
			cache.get_upcoming_assignments("stu-1", limit=2),
		)

		assert enrolled.get_student_classes.await_count == 2

	async def test_cancelled_caller_does_not_cancel_shared_fetch(self, enrolled, clock):
		gate = asyncio.Event()

		async def classes(student_id):
			await gate.wait()
			return [{"id": "c-1"}]

		enrolled.get_student_classes.side_effect = classes
		cache = cache_for(enrolled, clock)

		first = asyncio.ensure_future(cache.get_upcoming_assignments("stu-1"))
		second = asyncio.ensure_future(cache.get_upcoming_assignments("stu-1"))
		await asyncio.sleep(0)
		first.cancel()
		gate.set()

		result = await second

		assert [a.assignment_id for a in result] == ["a-13"]
		assert first.cancelled()

	async def test_failure_reaches_every_waiter_and_is_not_cached(self, enrolled, clock):
		gate = asyncio.Event()

		async def classes(student_id):
			await gate.wait()
			raise LearnPathConnectionError("Timed out")

		enrolled.get_student_classes.side_effect = classes
		cache = cache_for(enrolled, clock)

		first = asyncio.ensure_future(cache.get_upcoming_assignments("stu-1"))
		second = asyncio.ensure_future(cache.get_upcoming_assignments("stu-1"))
		await asyncio.sleep(0)
		gate.set()
		results = await asyncio.gather(first, second, return_exceptions=True)

		assert all(isinstance(r, LearnPathConnectionError) for r in results)
		assert enrolled.get_student_classes.await_count == 1

		enrolled.get_student_classes.side_effect = None
		enrolled.get_student_classes.return_value = [{"id": "c-1"}]
		upcoming = await cache.get_upcoming_assignments("stu-1")

		assert [a.assignment_id for a in upcoming] == ["a-13"]
		assert enrolled.get_student_classes.await_count == 2


class TestTimeToLive:

	async def test_fresh_result_is_served_without_io(self, enrolled, clock):
		cache = cache_for(enrolled, clock)
		await cache.get_upcoming_assignments("stu-1")

		clock.advance(119)
		await cache.get_upcoming_assignments("stu-1")

		assert enrolled.get_student_classes.await_count == 1

	async def test_expired_result_is_fetched_again(self, enrolled, clock):
		cache = cache_for(enrolled, clock)
		await cache.get_upcoming_assignments("stu-1")

		clock.advance(121)
		await cache.get_upcoming_assignments("stu-1")

		assert enrolled.get_student_classes.await_count == 2

	async def test_custom_ttl(self, enrolled, clock):
		cache = cache_for(enrolled, clock, ttl=10)
		await cache.get_upcoming_assignments("stu-1")

		clock.advance(11)
		await cache.get_upcoming_assignments("stu-1")

		assert enrolled.get_student_classes.await_count == 2

	async def test_cached_list_is_a_copy(self, enrolled, clock):
		cache = cache_for(enrolled, clock)
		first = await cache.get_upcoming_assignments("stu-1")
		first.clear()

		second = await cache.get_upcoming_assignments("stu-1")

		assert len(second) == 4

	async def test_invalidate(self, enrolled, clock):
		cache = cache_for(enrolled, clock)
		await cache.get_upcoming_assignments("stu-1")
		await cache.get_upcoming_assignments("stu-2")

		cache.invalidate("stu-1")
		await cache.get_upcoming_assignments("stu-1")
		await cache.get_upcoming_assignments("stu-2")
		assert enrolled.get_student_classes.await_count == 3

		cache.invalidate()
		await cache.get_upcoming_assignments("stu-2")
		assert enrolled.get_student_classes.await_count == 4
