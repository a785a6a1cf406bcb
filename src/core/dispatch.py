"""Dispatch table mapping (operation kind, resource type) to service primitives."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.core.errors import MissingOperationDataError, UnsupportedOperationError
from src.models.operation import OperationKind, ResourceType

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.models.operation import Operation, WidgetDeleteMetadata
    from src.services.protocols import ResourceServiceProtocol

    Handler = Callable[[ResourceServiceProtocol, Operation], None]


def _require_target(operation: Operation) -> str:
    if not operation.target:
        msg = f"{operation.kind} operation {operation.id!r} requires a target container id"
        raise MissingOperationDataError(msg)
    return operation.target


def _move(service: ResourceServiceProtocol, operation: Operation) -> None:
    service.move(operation.resource, _require_target(operation))


def _copy(service: ResourceServiceProtocol, operation: Operation) -> None:
    service.copy(operation.resource, _require_target(operation))


def _delete(service: ResourceServiceProtocol, operation: Operation) -> None:
    service.delete(operation.resource)


def _require_widget_metadata(operation: Operation) -> WidgetDeleteMetadata:
    if operation.metadata is None:
        msg = f"delete operation {operation.id!r} requires canvas_id and widget_type metadata"
        raise MissingOperationDataError(msg)
    return operation.metadata


def _delete_widget(service: ResourceServiceProtocol, operation: Operation) -> None:
    service.delete(operation.resource, _require_widget_metadata(operation))


def _pin(service: ResourceServiceProtocol, operation: Operation) -> None:
    service.pin(operation.resource)  # type: ignore[arg-type]


def _unpin(service: ResourceServiceProtocol, operation: Operation) -> None:
    service.unpin(operation.resource)  # type: ignore[arg-type]


DISPATCH_TABLE: dict[tuple[OperationKind, ResourceType], Handler] = {
    (OperationKind.MOVE, ResourceType.CANVAS): _move,
    (OperationKind.MOVE, ResourceType.WIDGET): _move,
    (OperationKind.COPY, ResourceType.CANVAS): _copy,
    (OperationKind.COPY, ResourceType.WIDGET): _copy,
    (OperationKind.DELETE, ResourceType.CANVAS): _delete,
    (OperationKind.DELETE, ResourceType.WIDGET): _delete_widget,
    (OperationKind.DELETE, ResourceType.USER): _delete,
    (OperationKind.PIN, ResourceType.WIDGET): _pin,
    (OperationKind.UNPIN, ResourceType.WIDGET): _unpin,
}


def resolve_handler(operation: Operation) -> Handler:
    """Look up the handler for an operation.

    Raises:
        UnsupportedOperationError: The kind is not defined for the resource type.
    """
    resource_type = ResourceType(operation.resource.resource_type)
    handler = DISPATCH_TABLE.get((operation.kind, resource_type))
    if handler is None:
        raise UnsupportedOperationError(operation.kind.value, resource_type.value)
    return handler


def dispatch(service: ResourceServiceProtocol, operation: Operation) -> None:
    """Run one attempt of an operation against the resource service."""
    resolve_handler(operation)(service, operation)


def check_operation(operation: Operation) -> None:
    """Validate an operation against the table without calling any service.

    Raises:
        DispatchError: The operation can never succeed as written.
    """
    resource_type = ResourceType(operation.resource.resource_type)
    resolve_handler(operation)
    if operation.kind in (OperationKind.MOVE, OperationKind.COPY):
        _require_target(operation)
    if operation.kind == OperationKind.DELETE and resource_type == ResourceType.WIDGET:
        _require_widget_metadata(operation)
