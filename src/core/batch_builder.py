"""Fluent builder for batch operation lists."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.models.operation import Operation, OperationKind

if TYPE_CHECKING:
    from src.models.operation import ResourceRef, WidgetDeleteMetadata, WidgetRef


class OperationBuilder:
    """Accumulates operations in call order.

    No checks beyond the Operation model itself; unsupported combinations
    surface when the batch runs.
    """

    def __init__(self) -> None:
        self._operations: list[Operation] = []

    def _add(
        self,
        operation_id: str,
        kind: OperationKind,
        resource: ResourceRef,
        target: str | None = None,
        metadata: WidgetDeleteMetadata | None = None,
    ) -> OperationBuilder:
        self._operations.append(
            Operation(
                id=operation_id,
                kind=kind,
                resource=resource,
                target=target,
                metadata=metadata,
            )
        )
        return self

    def move(self, operation_id: str, resource: ResourceRef, target: str) -> OperationBuilder:
        """Move a canvas to a folder, or a widget to another container."""
        return self._add(operation_id, OperationKind.MOVE, resource, target=target)

    def copy(self, operation_id: str, resource: ResourceRef, target: str) -> OperationBuilder:
        """Copy a canvas to a folder, or a widget to another canvas."""
        return self._add(operation_id, OperationKind.COPY, resource, target=target)

    def delete(
        self,
        operation_id: str,
        resource: ResourceRef,
        metadata: WidgetDeleteMetadata | None = None,
    ) -> OperationBuilder:
        """Delete a canvas, widget or user. Widgets need delete metadata."""
        return self._add(operation_id, OperationKind.DELETE, resource, metadata=metadata)

    def pin(self, operation_id: str, widget: WidgetRef) -> OperationBuilder:
        return self._add(operation_id, OperationKind.PIN, widget)

    def unpin(self, operation_id: str, widget: WidgetRef) -> OperationBuilder:
        return self._add(operation_id, OperationKind.UNPIN, widget)

    def build(self) -> list[Operation]:
        """Return the accumulated operations. The builder stays usable."""
        return list(self._operations)

    def __len__(self) -> int:
        return len(self._operations)


def new_builder() -> OperationBuilder:
    return OperationBuilder()
