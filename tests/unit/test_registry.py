"""Unit tests for resource descriptors and the registry."""

import pytest

from leavedesk.app.db.models import Leave
from leavedesk.app.errors import NotFoundError
from leavedesk.app.models import LeaveSchema
from leavedesk.app.resources import Relation, ResourceDescriptor, ResourceRegistry


def test_default_registry_resources(registry: ResourceRegistry) -> None:
    assert registry.names() == ["attendances", "leaves", "users"]
    assert registry.get("users").owner_field == "id"
    assert set(registry.get("leaves").relations) == {"user"}


def test_descriptor_columns(registry: ResourceRegistry) -> None:
    columns = registry.get("attendances").columns

    assert {"id", "tenant_id", "hours_worked", "date", "user_id"} <= set(columns)


def test_unknown_resource_raises_not_found(registry: ResourceRegistry) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        registry.get("payslips")

    assert exc_info.value.status_code == 404


def test_duplicate_registration_rejected(registry: ResourceRegistry) -> None:
    with pytest.raises(ValueError, match="already registered"):
        registry.register(registry.get("leaves"))


def test_relation_must_use_existing_column() -> None:
    """Test that a misconfigured relation fails at startup, not per request."""
    descriptor = ResourceDescriptor(
        name="leaves",
        model=Leave,
        schema=LeaveSchema,
        relations={"approver": Relation(resource="users", foreign_key="approver_id")},
    )

    with pytest.raises(ValueError, match="approver_id"):
        ResourceRegistry([descriptor])
