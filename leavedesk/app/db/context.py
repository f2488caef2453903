"""Request context for tenancy enforcement."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    """Acting identity resolved from the session for one request.

    Used to enforce tenancy boundaries in all data store operations and
    as the subject of every access decision.
    """

    tenant_id: str
    user_id: str
    roles: frozenset[str] = field(default_factory=frozenset)
