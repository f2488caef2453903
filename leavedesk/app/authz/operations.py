"""Operation kinds and their mapping from HTTP methods."""

from enum import Enum


class Operation(str, Enum):
    """Abstract operation kind checked by the access policy."""

    create = "create"
    read = "read"
    update = "update"
    delete = "delete"


_METHOD_OPERATIONS = {
    "GET": Operation.read,
    "POST": Operation.create,
    "PUT": Operation.update,
    "PATCH": Operation.update,
    "DELETE": Operation.delete,
}


def operation_for_method(method: str) -> Operation | None:
    """Map an HTTP method onto an operation kind.

    Returns:
        The operation, or None for methods that never touch a record
    """
    return _METHOD_OPERATIONS.get(method.upper())
