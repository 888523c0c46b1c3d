"""
Unit tests for shelf errors and the error history.
"""
from error_handling import (
    ErrorHandler,
    ErrorSeverity,
    ExternalFailureError,
    ForbiddenError,
    NotFoundError,
    ShelfError,
    error_message,
)


class TestShelfErrors:

    def test_context_fields_from_kwargs(self):
        error = NotFoundError("Tab not found", group_id="g1", tab_id="t1", unknown="ignored")

        assert error.message == "Tab not found"
        assert error.context.error_type == "NotFoundError"
        assert error.context.group_id == "g1"
        assert error.context.tab_id == "t1"
        assert not hasattr(error.context, "unknown")

    def test_hierarchy(self):
        assert issubclass(ForbiddenError, ShelfError)
        assert ExternalFailureError.severity is ErrorSeverity.HIGH

    def test_error_message(self):
        assert error_message(ForbiddenError("No")) == "No"
        assert error_message(ValueError("bad")) == "bad"
        assert error_message(RuntimeError()) == "Unknown error"
        assert error_message(RuntimeError("  "), fallback="Oops") == "Oops"


class TestErrorHandler:

    def test_records_and_summarizes(self):
        handler = ErrorHandler()
        handler.record(NotFoundError("Group not found"), command="renameGroup")
        handler.record(ValueError("bad"), command="moveTab")

        summary = handler.get_error_summary()

        assert summary["total_errors"] == 2
        assert summary["error_counts"] == {"NotFoundError": 1, "ValueError": 1}
        assert [e["command"] for e in summary["recent_errors"]] == ["renameGroup", "moveTab"]

    def test_history_is_bounded(self):
        handler = ErrorHandler(max_history=3)
        for i in range(5):
            handler.record(ValueError(str(i)))

        assert [e.message for e in handler.errors] == ["2", "3", "4"]

    def test_clear(self):
        handler = ErrorHandler()
        handler.record(ValueError("x"))
        handler.clear_errors()
        assert handler.errors == []
