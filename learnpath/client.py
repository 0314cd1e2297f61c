"""Client for the LearnPath academic REST API."""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .const import (
	DEFAULT_REQUEST_TIMEOUT,
	ROUTE_ATTENDANCE_REPORT,
	ROUTE_CLASS_MEETINGS,
	ROUTE_COURSE_ATTENDANCE_SUMMARY,
	ROUTE_COURSE_DETAILS,
	ROUTE_COVERED_TOPIC,
	ROUTE_MEETING_ASSIGNMENTS,
	ROUTE_STUDENT_CLASSES,
)
from .exceptions import LearnPathAPIError, LearnPathConnectionError, LearnPathDataError

_LOGGER = logging.getLogger(__name__)

DEFAULT_HEADERS = {
	"Accept": "application/json, text/plain, */*",
	"User-Agent": "learnpath/1.0",
}


class LearnPathClient:
	"""Client returning parsed JSON from the academic API.

	Every request is bounded by a total timeout and never retried; callers
	decide how a failure degrades.
	"""

	def __init__(
		self,
		base_url: str,
		session: Optional[aiohttp.ClientSession] = None,
		token: Optional[str] = None,
		timeout: float = DEFAULT_REQUEST_TIMEOUT,
	):
		"""Initialise the client.

		Args:
			base_url: Root URL of the API, without trailing slash
			session: Optional aiohttp session. If None, one is created on enter.
			token: Optional bearer token
			timeout: Total seconds allowed per request
		"""
		self.base_url = base_url.rstrip("/")
		self._session = session
		self._own_session = session is None
		self._token = token
		self._timeout = aiohttp.ClientTimeout(total=timeout)

	async def __aenter__(self):
		if self._own_session:
			self._session = aiohttp.ClientSession(timeout=self._timeout)
		return self

	async def __aexit__(self, exc_type, exc_val, exc_tb):
		await self.close()

	async def close(self) -> None:
		if self._own_session and self._session:
			await self._session.close()
			self._session = None

	def _headers(self) -> Dict[str, str]:
		headers = DEFAULT_HEADERS.copy()
		if self._token:
			headers["Authorization"] = f"Bearer {self._token}"
		return headers

	async def _get_json(self, path: str) -> Any:
		"""GET a path and decode its JSON body."""
		if not self._session:
			raise LearnPathAPIError("Client not properly initialised")

		url = f"{self.base_url}{path}"
		_LOGGER.debug(f"GET {url}")
		try:
			async with self._session.get(url, headers=self._headers(), timeout=self._timeout) as resp:
				if resp.status != 200:
					raise LearnPathAPIError(f"GET {path} failed: HTTP {resp.status}", status=resp.status)

				try:
					return await resp.json()
				except aiohttp.ContentTypeError as e:
					# Some endpoints send JSON with a text/plain content type
					text = await resp.text()
					_LOGGER.debug(f"Content-type error for {path}, attempting manual JSON parse: {e}")
					if text.strip().startswith(("{", "[")):
						try:
							return json.loads(text)
						except json.JSONDecodeError as err:
							raise LearnPathDataError(f"Invalid JSON response from {path}") from err
					raise LearnPathDataError(f"Non-JSON response from {path}: {text[:200]}")
		except asyncio.TimeoutError as e:
			raise LearnPathConnectionError(f"Timed out requesting {path}") from e
		except aiohttp.ClientError as e:
			raise LearnPathConnectionError(f"Connection error: {e}") from e

	async def get_meetings(self, class_id: str) -> List[Dict[str, Any]]:
		"""Get the raw meeting list of a class."""
		data = await self._get_json(ROUTE_CLASS_MEETINGS.format(class_id=class_id))
		if not isinstance(data, list):
			raise LearnPathDataError(f"Expected a meeting list for class {class_id}")
		return data

	# Meeting lists for the fan-out view come from the same endpoint
	get_class_meetings = get_meetings

	async def get_covered_topic(self, meeting_id: str) -> Dict[str, Any]:
		"""Get the covered topic of a meeting; raises on 404."""
		return await self._get_json(ROUTE_COVERED_TOPIC.format(meeting_id=meeting_id))

	async def get_attendance_report(self, student_id: str) -> Dict[str, Any]:
		"""Get the cross-class attendance report (``classSummaries``)."""
		return await self._get_json(ROUTE_ATTENDANCE_REPORT.format(student_id=student_id))

	async def get_course_attendance_summary(self, course_id: str, student_id: str) -> Dict[str, Any]:
		"""Get the per-course attendance summary (``sessionRecords``).

		The summary lives under the attendance controller on newer deployments
		and under the course controller on older ones. The next route is only
		tried when the previous one answered 404.
		"""
		last_error: Optional[Exception] = None
		for route in ROUTE_COURSE_ATTENDANCE_SUMMARY:
			path = route.format(course_id=course_id, student_id=student_id)
			try:
				return await self._get_json(path)
			except LearnPathAPIError as e:
				last_error = e
				if e.status != 404:
					break
				_LOGGER.debug(f"Attendance summary not found at {path}, trying next route")
		raise last_error or LearnPathAPIError("Failed to fetch course attendance summary")

	async def get_course_assignments(self, student_id: str, course_id: str) -> Dict[str, Any]:
		"""Get course details, including assignments grouped by meeting."""
		return await self._get_json(ROUTE_COURSE_DETAILS.format(student_id=student_id, course_id=course_id))

	async def get_student_classes(self, student_id: str) -> List[Dict[str, Any]]:
		data = await self._get_json(ROUTE_STUDENT_CLASSES.format(student_id=student_id))
		if not isinstance(data, list):
			raise LearnPathDataError(f"Expected a class list for student {student_id}")
		return data

	async def get_meeting_assignments(self, meeting_id: str, student_id: str) -> List[Dict[str, Any]]:
		data = await self._get_json(ROUTE_MEETING_ASSIGNMENTS.format(meeting_id=meeting_id, student_id=student_id))
		if not isinstance(data, list):
			raise LearnPathDataError(f"Expected an assignment list for meeting {meeting_id}")
		return data
