"""Turn raw user/profile records into presentation-ready node summaries."""

from __future__ import annotations

import json
import math
from typing import Any, Dict, Iterable, List, Optional

from netgraph.domain.network.models import ProfileRecord, UserRecord
from netgraph.domain.network.repository import ConnectionGraphRepository
from netgraph.domain.network.schemas import NodeSummary


def _clean_text(value: Any) -> Optional[str]:
	if value is None:
		return None
	text = str(value).strip()
	return text or None


def normalise_list(value: Any) -> List[str]:
	"""Accept lists, JSON arrays or comma-separated strings; drop blanks and duplicates."""
	if value is None:
		return []
	if isinstance(value, str):
		text = value.strip()
		if text.startswith("["):
			try:
				value = json.loads(text)
			except ValueError:
				value = text.split(",")
		else:
			value = text.split(",")
	if isinstance(value, dict):
		value = list(value.values())
	if not isinstance(value, (list, tuple, set)):
		value = [value]
	seen: set[str] = set()
	items: List[str] = []
	for item in value:
		if isinstance(item, dict):
			item = item.get("label") or item.get("name") or item.get("value")
		text = _clean_text(item)
		if text and text.lower() not in seen:
			seen.add(text.lower())
			items.append(text)
	return items


def _humanise(status: str) -> str:
	return status.replace("_", " ").replace("-", " ").strip().capitalize()


def availability_descriptors(profile: Optional[ProfileRecord]) -> List[str]:
	"""Ordered availability labels, falling back to preferred engagements."""
	if profile is None:
		return []
	descriptors: List[str] = []
	explicit = False
	status = _clean_text(profile.availability_status)
	if status:
		explicit = True
		descriptors.append(_humanise(status))
	hours = _to_number(profile.available_hours_per_week)
	if hours is not None:
		explicit = True
		descriptors.append(f"{int(hours) if float(hours).is_integer() else hours} hrs/week")
	if profile.open_to_remote is not None:
		explicit = True
		if profile.open_to_remote:
			descriptors.append("Open to remote")
	notes = _clean_text(profile.availability_notes)
	if notes:
		explicit = True
		descriptors.append(notes)
	if not explicit:
		return normalise_list(profile.preferred_engagements)
	return descriptors


def _to_number(value: Any) -> Optional[float]:
	if value is None or isinstance(value, bool):
		return None
	try:
		number = float(value)
	except (TypeError, ValueError):
		return None
	return number if math.isfinite(number) else None


def summarise_user(user: UserRecord) -> NodeSummary:
	profile = user.profile
	return NodeSummary(
		id=user.id,
		name=user.display_name,
		role=user.role,
		headline=_clean_text(profile.headline) if profile else None,
		location=_clean_text(profile.location) if profile else None,
		avatar_url=_clean_text(profile.avatar_url) if profile else None,
		avatar_seed=_clean_text(profile.avatar_seed) if profile else None,
		summary=_clean_text(profile.bio) if profile else None,
		focus_areas=normalise_list(profile.areas_of_focus) if profile else [],
		availability=availability_descriptors(profile),
		trust_score=_to_number(profile.trust_score) if profile else None,
	)


class NodeSummaryHydrator:
	"""Batch-loads users and returns one summary per resolvable id."""

	def __init__(self, repository: ConnectionGraphRepository) -> None:
		self._repo = repository

	async def hydrate(self, user_ids: Iterable[str]) -> Dict[str, NodeSummary]:
		ids = {str(uid) for uid in user_ids if uid}
		if not ids:
			return {}
		users = await self._repo.get_users_batch(ids)
		return {user_id: summarise_user(user) for user_id, user in users.items()}
