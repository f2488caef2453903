"""Resource descriptors - one per REST resource served by the generic handler."""

from collections.abc import Mapping
from dataclasses import dataclass, field

from pydantic import BaseModel

from leavedesk.app.db.models import Attendance, Base, Leave, User
from leavedesk.app.errors import NotFoundError
from leavedesk.app.models import AttendanceSchema, LeaveSchema, UserSchema


@dataclass(frozen=True)
class Relation:
    """A to-one reference that can be embedded with ``include=<name>``."""

    resource: str
    foreign_key: str


@dataclass(frozen=True)
class ResourceDescriptor:
    """Everything the generic handler needs to serve one resource.

    Attributes:
        name: Route segment, e.g. ``leaves``
        model: SQLAlchemy model backing the resource
        schema: Pydantic schema validating request bodies
        filter_fields: Columns a caller may filter and order by
        relations: Includable references keyed by relation name
        owner_field: Column naming the owning user, for ``own`` scoped grants
    """

    name: str
    model: type[Base]
    schema: type[BaseModel]
    filter_fields: frozenset[str] = frozenset()
    relations: Mapping[str, Relation] = field(default_factory=dict)
    owner_field: str = "user_id"

    @property
    def columns(self) -> list[str]:
        return [c.name for c in self.model.__table__.columns]


class ResourceRegistry:
    """Maps route resource names to descriptors."""

    def __init__(self, descriptors: list[ResourceDescriptor] | None = None) -> None:
        self._descriptors: dict[str, ResourceDescriptor] = {}
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor: ResourceDescriptor) -> None:
        if descriptor.name in self._descriptors:
            raise ValueError(f"Resource '{descriptor.name}' already registered")
        for rel_name, relation in descriptor.relations.items():
            if relation.foreign_key not in descriptor.columns:
                raise ValueError(
                    f"Relation '{rel_name}' on '{descriptor.name}' uses unknown column "
                    f"'{relation.foreign_key}'"
                )
        self._descriptors[descriptor.name] = descriptor

    def get(self, name: str) -> ResourceDescriptor:
        """Look up a descriptor.

        Raises:
            NotFoundError: If no resource is registered under ``name``
        """
        descriptor = self._descriptors.get(name)
        if descriptor is None:
            raise NotFoundError(f"Unknown resource '{name}'")
        return descriptor

    def names(self) -> list[str]:
        return sorted(self._descriptors)

    def __iter__(self):
        return iter(self._descriptors.values())


def default_registry() -> ResourceRegistry:
    """Registry with the leave, attendance and user resources."""
    user_relation = {"user": Relation(resource="users", foreign_key="user_id")}

    return ResourceRegistry(
        [
            ResourceDescriptor(
                name="leaves",
                model=Leave,
                schema=LeaveSchema,
                filter_fields=frozenset(
                    {"status", "leave_type", "start_date", "end_date", "user_id"}
                ),
                relations=user_relation,
            ),
            ResourceDescriptor(
                name="attendances",
                model=Attendance,
                schema=AttendanceSchema,
                filter_fields=frozenset({"date", "hours_worked", "user_id"}),
                relations=user_relation,
            ),
            ResourceDescriptor(
                name="users",
                model=User,
                schema=UserSchema,
                filter_fields=frozenset({"email", "name", "role"}),
                owner_field="id",
            ),
        ]
    )
