"""Authorization provider - operation kinds and the role access policy."""

from leavedesk.app.authz.operations import Operation, operation_for_method
from leavedesk.app.authz.policy import (
    AccessDecision,
    AccessPolicy,
    Grant,
    RoleAccessPolicy,
    default_grants,
)
