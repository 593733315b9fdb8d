"""Invitation response analytics: acceptance rate and median response time."""

from __future__ import annotations

import math
from statistics import median
from typing import Iterable, List, Optional

from netgraph.domain.network.models import RESPONDED_STATUSES, Connection, ConnectionStatus
from netgraph.domain.network.schemas import InvitationAnalyticsSummary

# Medians below this many hours are labelled in hours, longer ones in days.
HOURS_LABEL_CUTOFF = 48


def round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def response_hours(edges: Iterable[Connection]) -> List[float]:
	"""Response latency per edge in hours; negative spans (clock skew) are discarded."""
	hours: List[float] = []
	for edge in edges:
		if edge.created_at is None or edge.responded_at is None:
			continue
		elapsed = (edge.responded_at - edge.created_at).total_seconds() / 3600
		if elapsed >= 0:
			hours.append(elapsed)
	return hours


def format_response_label(hours: Optional[float]) -> Optional[str]:
	if hours is None:
		return None
	if hours < 1:
		return "<1h"
	if hours < HOURS_LABEL_CUTOFF:
		return f"{round_half_up(hours)}h"
	return f"{round_half_up(hours / 24)}d"


def summarise_invitations(edges: Iterable[Connection]) -> InvitationAnalyticsSummary:
	responded = [edge for edge in edges if edge.status in RESPONDED_STATUSES]
	total = len(responded)
	accepted = sum(1 for edge in responded if edge.status == ConnectionStatus.ACCEPTED)
	acceptance_rate = round_half_up(100 * accepted / total) if total else None
	latencies = response_hours(responded)
	median_hours = float(median(latencies)) if latencies else None
	return InvitationAnalyticsSummary(
		acceptance_rate=acceptance_rate,
		median_response=format_response_label(median_hours),
		median_response_hours=round(median_hours, 2) if median_hours is not None else None,
		closed_count=total,
	)
