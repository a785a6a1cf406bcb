"""Shared test fixtures for the Canvus batch client."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import pytest

from src.models.operation import CanvasRef, UserRef, WidgetDeleteMetadata, WidgetRef

if TYPE_CHECKING:
    from src.models.operation import ResourceRef


class StubResourceService:
    """In-memory resource service that records calls and raises scripted failures.

    Tracks how many primitives run at the same time so concurrency limits
    can be asserted.
    """

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.active = 0
        self.max_active = 0
        self._pending_failures: dict[str, list[Exception]] = {}
        self._permanent_failures: dict[str, Exception] = {}
        self._lock = threading.Lock()

    def fail_times(self, resource_id: str, count: int, error: Exception | None = None) -> None:
        """Fail the next `count` calls for a resource, then succeed."""
        failure = error if error is not None else RuntimeError(f"transient failure on {resource_id}")
        self._pending_failures[resource_id] = [failure] * count

    def fail_always(self, resource_id: str, error: Exception | None = None) -> None:
        self._permanent_failures[resource_id] = (
            error if error is not None else RuntimeError(f"permanent failure on {resource_id}")
        )

    def calls_for(self, resource_id: str) -> int:
        with self._lock:
            return sum(1 for _, called_id in self.calls if called_id == resource_id)

    def _call(self, primitive: str, resource: ResourceRef) -> None:
        resource_id = str(resource.id)
        with self._lock:
            self.calls.append((primitive, resource_id))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            with self._lock:
                if resource_id in self._permanent_failures:
                    raise self._permanent_failures[resource_id]
                pending = self._pending_failures.get(resource_id)
                if pending:
                    raise pending.pop(0)
        finally:
            with self._lock:
                self.active -= 1

    def move(self, resource: ResourceRef, target: str) -> None:
        self._call("move", resource)

    def copy(self, resource: ResourceRef, target: str) -> None:
        self._call("copy", resource)

    def delete(self, resource: ResourceRef, metadata: WidgetDeleteMetadata | None = None) -> None:
        self._call("delete", resource)

    def pin(self, resource: WidgetRef) -> None:
        self._call("pin", resource)

    def unpin(self, resource: WidgetRef) -> None:
        self._call("unpin", resource)


@pytest.fixture
def stub_service() -> StubResourceService:
    """Provide a stub resource service with no artificial delay."""
    return StubResourceService()


@pytest.fixture
def canvas() -> CanvasRef:
    return CanvasRef(id="canvas-1")


@pytest.fixture
def widget() -> WidgetRef:
    return WidgetRef(id="widget-1", canvas_id="canvas-1", widget_type="Note")


@pytest.fixture
def user() -> UserRef:
    return UserRef(id=42)


@pytest.fixture
def widget_metadata() -> WidgetDeleteMetadata:
    return WidgetDeleteMetadata(canvas_id="canvas-1", widget_type="Note")
