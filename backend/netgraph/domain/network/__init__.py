"""Connection graph domain exports."""

from . import analytics, audit, policy, traversal  # noqa: F401
from .exceptions import (  # noqa: F401
	AuthorizationError,
	ConflictError,
	NetworkError,
	NotFoundError,
	ValidationError,
)
from .lifecycle import ConnectionLifecycleManager  # noqa: F401
from .models import Connection, ConnectionStatus, Decision, Role, UserRecord  # noqa: F401
from .repository import ConnectionGraphRepository, InMemoryConnectionGraphRepository  # noqa: F401
from .service import NetworkQueryService  # noqa: F401
