"""Unit tests for the pure batch core modules.

Covers the operation builder, the dispatch table, result aggregation and
the error hierarchy. No threads, no network.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from src.core.batch_builder import OperationBuilder, new_builder
from src.core.dispatch import DISPATCH_TABLE, check_operation, dispatch, resolve_handler
from src.core.errors import (
    BatchAbortedError,
    BatchInterruptedError,
    BatchTimeoutError,
    CanvusAPIError,
    DispatchError,
    ErrorCode,
    MissingOperationDataError,
    UnsupportedOperationError,
    error_code_for_status,
)
from src.core.result_aggregation import format_batch_summary, summarize
from src.models.batch_result import OperationResult
from src.models.operation import (
    CanvasRef,
    Operation,
    OperationKind,
    ResourceType,
    UserRef,
    WidgetDeleteMetadata,
    WidgetRef,
)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _result(operation_id: str, millis: int, error: Exception | None = None) -> OperationResult:
    return OperationResult(
        operation_id=operation_id,
        success=error is None,
        error=error,
        start_time=NOW,
        end_time=NOW + timedelta(milliseconds=millis),
        duration=timedelta(milliseconds=millis),
    )


# ──────────────────────────────────────────────────────────────────────
# Module 1: core/batch_builder.py
# ──────────────────────────────────────────────────────────────────────


class TestOperationBuilder:
    """Tests for OperationBuilder."""

    def test_builds_operations_in_call_order(
        self, canvas: CanvasRef, widget: WidgetRef, user: UserRef
    ) -> None:
        ops = (
            new_builder()
            .move("op1", canvas, "folder-1")
            .copy("op2", canvas, "folder-2")
            .delete("op3", user)
            .pin("op4", widget)
            .unpin("op5", widget)
            .build()
        )

        assert [op.id for op in ops] == ["op1", "op2", "op3", "op4", "op5"]
        assert [op.kind for op in ops] == [
            OperationKind.MOVE,
            OperationKind.COPY,
            OperationKind.DELETE,
            OperationKind.PIN,
            OperationKind.UNPIN,
        ]
        assert ops[0].target == "folder-1"
        assert ops[1].target == "folder-2"
        assert ops[2].target is None

    def test_delete_widget_carries_metadata(
        self, widget: WidgetRef, widget_metadata: WidgetDeleteMetadata
    ) -> None:
        ops = OperationBuilder().delete("op1", widget, widget_metadata).build()
        assert ops[0].metadata == widget_metadata

    def test_build_returns_copy(self, canvas: CanvasRef) -> None:
        builder = new_builder().move("op1", canvas, "f")
        first = builder.build()
        first.clear()
        assert len(builder.build()) == 1

    def test_builder_stays_usable_after_build(self, canvas: CanvasRef) -> None:
        builder = new_builder().move("op1", canvas, "f")
        builder.build()
        builder.copy("op2", canvas, "g")
        assert len(builder) == 2

    def test_empty_builder(self) -> None:
        assert new_builder().build() == []

    def test_unsupported_combination_not_rejected_at_build(self, canvas: CanvasRef) -> None:
        ops = new_builder().pin("op1", canvas).build()  # type: ignore[arg-type]
        assert ops[0].kind == OperationKind.PIN


# ──────────────────────────────────────────────────────────────────────
# Module 2: core/dispatch.py
# ──────────────────────────────────────────────────────────────────────


class TestDispatchTable:
    """Tests for the (kind, resource type) dispatch table."""

    def test_table_covers_supported_combinations(self) -> None:
        assert set(DISPATCH_TABLE) == {
            (OperationKind.MOVE, ResourceType.CANVAS),
            (OperationKind.MOVE, ResourceType.WIDGET),
            (OperationKind.COPY, ResourceType.CANVAS),
            (OperationKind.COPY, ResourceType.WIDGET),
            (OperationKind.DELETE, ResourceType.CANVAS),
            (OperationKind.DELETE, ResourceType.WIDGET),
            (OperationKind.DELETE, ResourceType.USER),
            (OperationKind.PIN, ResourceType.WIDGET),
            (OperationKind.UNPIN, ResourceType.WIDGET),
        }

    @pytest.mark.parametrize(
        ("kind", "resource"),
        [
            (OperationKind.MOVE, UserRef(id=1)),
            (OperationKind.COPY, UserRef(id=1)),
            (OperationKind.PIN, CanvasRef(id="c1")),
            (OperationKind.UNPIN, UserRef(id=1)),
        ],
    )
    def test_unsupported_combinations(self, kind: OperationKind, resource: object) -> None:
        op = Operation(id="op1", kind=kind, resource=resource)  # type: ignore[arg-type]
        with pytest.raises(UnsupportedOperationError) as exc_info:
            resolve_handler(op)
        assert exc_info.value.kind == kind.value
        assert "unsupported operation" in str(exc_info.value)

    def test_move_calls_service_with_target(self, canvas: CanvasRef) -> None:
        service = MagicMock()
        dispatch(service, Operation(id="op1", kind=OperationKind.MOVE, resource=canvas, target="f1"))
        service.move.assert_called_once_with(canvas, "f1")

    def test_move_without_target_is_dispatch_error(self, canvas: CanvasRef) -> None:
        service = MagicMock()
        with pytest.raises(MissingOperationDataError):
            dispatch(service, Operation(id="op1", kind=OperationKind.MOVE, resource=canvas))
        service.move.assert_not_called()

    def test_delete_canvas_without_metadata(self, canvas: CanvasRef) -> None:
        service = MagicMock()
        dispatch(service, Operation(id="op1", kind=OperationKind.DELETE, resource=canvas))
        service.delete.assert_called_once_with(canvas)

    def test_delete_widget_passes_metadata(
        self, widget: WidgetRef, widget_metadata: WidgetDeleteMetadata
    ) -> None:
        service = MagicMock()
        op = Operation(
            id="op1", kind=OperationKind.DELETE, resource=widget, metadata=widget_metadata
        )
        dispatch(service, op)
        service.delete.assert_called_once_with(widget, widget_metadata)

    def test_delete_widget_without_metadata_fails(self, widget: WidgetRef) -> None:
        service = MagicMock()
        with pytest.raises(MissingOperationDataError):
            dispatch(service, Operation(id="op1", kind=OperationKind.DELETE, resource=widget))
        service.delete.assert_not_called()

    def test_pin_and_unpin(self, widget: WidgetRef) -> None:
        service = MagicMock()
        dispatch(service, Operation(id="op1", kind=OperationKind.PIN, resource=widget))
        dispatch(service, Operation(id="op2", kind=OperationKind.UNPIN, resource=widget))
        service.pin.assert_called_once_with(widget)
        service.unpin.assert_called_once_with(widget)


class TestCheckOperation:
    """Tests for pre-flight operation checks."""

    def test_valid_operation_passes(self, canvas: CanvasRef) -> None:
        check_operation(Operation(id="op1", kind=OperationKind.COPY, resource=canvas, target="f"))

    def test_missing_target(self, canvas: CanvasRef) -> None:
        with pytest.raises(DispatchError):
            check_operation(Operation(id="op1", kind=OperationKind.COPY, resource=canvas))

    def test_unsupported_combination(self, user: UserRef) -> None:
        with pytest.raises(UnsupportedOperationError):
            check_operation(Operation(id="op1", kind=OperationKind.PIN, resource=user))

    def test_widget_delete_needs_metadata(self, widget: WidgetRef) -> None:
        with pytest.raises(MissingOperationDataError):
            check_operation(Operation(id="op1", kind=OperationKind.DELETE, resource=widget))


# ──────────────────────────────────────────────────────────────────────
# Module 3: core/result_aggregation.py
# ──────────────────────────────────────────────────────────────────────


class TestSummarize:
    """Tests for summarize."""

    def test_counts_and_durations(self) -> None:
        results = [
            _result("op1", 100),
            _result("op2", 50, error=RuntimeError("failed")),
            _result("op3", 75),
        ]

        summary = summarize(results)

        assert summary.total_operations == 3
        assert summary.successful == 2
        assert summary.failed == 1
        assert summary.total_duration == timedelta(milliseconds=225)
        assert summary.average_duration == timedelta(milliseconds=75)
        assert [r.operation_id for r in summary.failed_operations] == ["op2"]

    def test_empty_results(self) -> None:
        summary = summarize([])
        assert summary.total_operations == 0
        assert summary.successful == 0
        assert summary.failed == 0
        assert summary.total_duration == timedelta()
        assert summary.average_duration == timedelta()
        assert summary.failed_operations == []

    def test_idempotent(self) -> None:
        results = [_result("op1", 10), _result("op2", 20, error=RuntimeError("x"))]
        assert summarize(results) == summarize(results)

    def test_accepts_iterables(self) -> None:
        summary = summarize(_result(f"op{i}", 10) for i in range(4))
        assert summary.total_operations == 4
        assert summary.average_duration == timedelta(milliseconds=10)


class TestFormatBatchSummary:
    """Tests for format_batch_summary."""

    def test_includes_counts(self) -> None:
        text = format_batch_summary(summarize([_result("op1", 100), _result("op2", 300)]))
        assert "[SUMMARY] Operations: 2" in text
        assert "Successful: 2" in text
        assert "Average duration: 0.200s" in text
        assert "Errors" not in text

    def test_lists_failures(self) -> None:
        summary = summarize([_result("op1", 10, error=RuntimeError("nope"))])
        text = format_batch_summary(summary)
        assert "Errors (1):" in text
        assert "- op1: nope" in text

    def test_truncates_failures(self) -> None:
        results = [_result(f"op{i}", 10, error=RuntimeError("x")) for i in range(15)]
        text = format_batch_summary(summarize(results), max_errors=10)
        assert "... and 5 more" in text


# ──────────────────────────────────────────────────────────────────────
# Module 4: core/errors.py
# ──────────────────────────────────────────────────────────────────────


class TestErrorCodes:
    """Tests for status-to-code mapping."""

    @pytest.mark.parametrize(
        ("status", "code"),
        [
            (400, ErrorCode.INVALID_REQUEST),
            (401, ErrorCode.UNAUTHORIZED),
            (404, ErrorCode.NOT_FOUND),
            (418, ErrorCode.INVALID_REQUEST),
            (429, ErrorCode.TOO_MANY_REQUESTS),
            (502, ErrorCode.INTERNAL_SERVER_ERROR),
            (503, ErrorCode.SERVICE_UNAVAILABLE),
        ],
    )
    def test_mapping(self, status: int, code: ErrorCode) -> None:
        assert error_code_for_status(status) == code

    def test_success_status_has_no_code(self) -> None:
        assert error_code_for_status(200) is None


class TestCanvusAPIError:
    """Tests for CanvusAPIError parsing and classification."""

    def test_from_json_body(self) -> None:
        error = CanvusAPIError.from_response(
            404,
            '{"error_description": "canvas not found", "request_id": "req-1",'
            ' "details": {"id": "c1"}}',
        )
        assert error.status_code == 404
        assert error.code == ErrorCode.NOT_FOUND
        assert error.message == "canvas not found"
        assert error.request_id == "req-1"
        assert error.details == {"id": "c1"}
        assert "canvas not found" in str(error)
        assert "req-1" in str(error)

    def test_from_plain_text_body(self) -> None:
        error = CanvusAPIError.from_response(500, "Internal failure\n")
        assert error.message == "Internal failure"
        assert error.code == ErrorCode.INTERNAL_SERVER_ERROR

    def test_from_empty_body(self) -> None:
        error = CanvusAPIError.from_response(401, "")
        assert error.message == ""
        assert str(error).startswith("API error 401")

    @pytest.mark.parametrize(
        ("status", "retryable"),
        [(400, False), (404, False), (409, False), (429, True), (500, True), (503, True)],
    )
    def test_retryable(self, status: int, retryable: bool) -> None:
        assert CanvusAPIError(status).retryable is retryable


class TestBatchInterruptedError:
    """Tests for interruption errors."""

    def test_carries_results(self) -> None:
        results = [_result("op1", 10)]
        error = BatchTimeoutError(results, 5)
        assert isinstance(error, BatchInterruptedError)
        assert error.results == results
        assert error.total == 5
        assert "timed out" in str(error)
        assert "1 of 5" in str(error)

    def test_aborted_reason(self) -> None:
        assert "aborted" in str(BatchAbortedError([], 3))
