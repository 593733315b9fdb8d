"""Authentication helpers for FastAPI endpoints.

Identity is owned by an upstream gateway which forwards the caller as
`X-User-Id`. Only the id is trusted here; roles are always re-read from the
user store by the domain services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, status


@dataclass(slots=True)
class AuthenticatedUser:
	id: str


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> AuthenticatedUser:
	"""Resolve the authenticated user from the forwarded identity header."""
	user_id = (x_user_id or "").strip()
	if not user_id:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_identity")
	try:
		user_id = str(UUID(user_id))
	except ValueError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_identity") from None
	return AuthenticatedUser(id=user_id)
