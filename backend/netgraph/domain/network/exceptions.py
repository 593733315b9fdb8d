"""Domain-level exceptions for the connection graph."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class NetworkError(Exception):
	"""Base class for expected, user-facing connection graph outcomes."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	reason: str = "network_error"

	def __init__(self, reason: str | None = None, message: str | None = None) -> None:
		super().__init__(message or reason or self.reason)
		if reason:
			self.reason = reason
		self.message = message or self.reason


class ValidationError(NetworkError):
	"""Malformed or missing input."""

	status_code = _HTTP_422
	reason = "validation_error"


class NotFoundError(NetworkError):
	"""Referenced user or connection does not exist."""

	status_code = status.HTTP_404_NOT_FOUND
	reason = "not_found"


class AuthorizationError(NetworkError):
	"""Actor lacks the right for the requested action."""

	status_code = status.HTTP_403_FORBIDDEN
	reason = "forbidden"


class ConflictError(NetworkError):
	"""A connection already exists or is no longer pending."""

	status_code = status.HTTP_409_CONFLICT
	reason = "conflict"
