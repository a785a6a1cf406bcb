"""Service protocols defining interfaces for dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from src.models.operation import ResourceRef, WidgetDeleteMetadata, WidgetRef


class ResourceServiceProtocol(Protocol):
    """Primitives the batch executor drives. Each raises on failure."""

    def move(self, resource: ResourceRef, target: str) -> None: ...

    def copy(self, resource: ResourceRef, target: str) -> None: ...

    def delete(
        self,
        resource: ResourceRef,
        metadata: WidgetDeleteMetadata | None = None,
    ) -> None: ...

    def pin(self, resource: WidgetRef) -> None: ...

    def unpin(self, resource: WidgetRef) -> None: ...
