"""Custom exceptions for the LearnPath engine."""

from typing import Optional


class LearnPathError(Exception):
	"""Base exception for LearnPath errors."""
	pass


class LearnPathAPIError(LearnPathError):
	"""API request failed."""

	def __init__(self, message: str, status: Optional[int] = None) -> None:
		super().__init__(message)
		self.status = status


class LearnPathConnectionError(LearnPathError):
	"""Connection to the upstream service failed or timed out."""
	pass


class LearnPathDataError(LearnPathError):
	"""Data parsing or validation error."""
	pass


class SessionLoadError(LearnPathError):
	"""Session resolution failed as a whole; the caller may retry."""

	def __init__(self, message: str, class_id: Optional[str] = None) -> None:
		super().__init__(message)
		self.class_id = class_id
