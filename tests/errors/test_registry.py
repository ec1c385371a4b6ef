"""Tests for the error code registry and MathTutorError formatting."""

import re

import pytest

from mathtutor.errors import (
    ERROR_REGISTRY,
    ErrorCategory,
    MathTutorError,
    NotFoundError,
    StoragePathError,
    ValidationError,
    format_error,
    get_error,
    get_errors_by_category,
)

_PREFIX_BY_CATEGORY = {
    ErrorCategory.REQUEST: "E-1",
    ErrorCategory.AGENT: "E-2",
    ErrorCategory.FILES: "E-3",
    ErrorCategory.SYSTEM: "E-4",
}


@pytest.mark.parametrize("code", sorted(ERROR_REGISTRY))
def test_registry_entries_are_consistent(code):
    error = ERROR_REGISTRY[code]

    assert re.fullmatch(r"E-\d{4}", code)
    assert error.code == code
    assert code.startswith(_PREFIX_BY_CATEGORY[error.category])
    assert error.title
    assert error.remediation


def test_get_error():
    assert get_error("E-3002").title == "Sandbox File Not Found"
    assert get_error("E-9999") is None


def test_get_errors_by_category():
    codes = {e.code for e in get_errors_by_category(ErrorCategory.FILES)}

    assert codes == {"E-3001", "E-3002", "E-3003", "E-3004"}


class TestMathTutorError:

    def test_from_code_formats_message(self):
        error = MathTutorError.from_code("E-1001", field="userId")

        assert error.message == "userId is required."
        assert error.category == ErrorCategory.REQUEST
        assert str(error) == "E-1001: userId is required."

    def test_details_kept_separately(self):
        error = MathTutorError.from_code(
            "E-3003", file_name="a.png", reason="timeout", details={"file_id": "f1"}
        )

        assert error.details == {"file_id": "f1"}
        assert error.is_retryable

    def test_missing_placeholder_keeps_template(self):
        error = MathTutorError.from_code("E-3002", path="/mnt/data/a.png")

        assert "{container_id}" in error.message

    def test_unknown_code(self):
        error = MathTutorError.from_code("E-0000")

        assert error.message == "Unknown error: E-0000"

    def test_is_an_exception(self):
        with pytest.raises(MathTutorError):
            raise MathTutorError.from_code("E-4001", operation="save")

    def test_format_error(self):
        error = MathTutorError.from_code("E-1003", limit_mb=20, size=30)

        assert format_error(error) == (
            "E-1003: File exceeds the 20 MB limit (30 bytes).\n"
            "  Action: Upload a smaller file."
        )
        assert "\n" not in format_error(error, include_remediation=False)


def test_not_found_error_message():
    error = NotFoundError("Conversation", "abc")

    assert str(error) == "Conversation 'abc' not found"
    assert error.identifier == "abc"


def test_format_error_lists_details():
    error = MathTutorError.from_code(
        "E-3003", file_name="a.png", reason="timeout", details={"path": "u/c/a.png", "container_id": "cntr_1"}
    )

    assert format_error(error).splitlines()[1] == "  Context: container_id=cntr_1, path=u/c/a.png"


def test_response_body():
    error = MathTutorError.from_code("E-1001", field="message", details={"field": "message"})

    assert error.to_response_body() == {
        "error": "message is required.",
        "error_code": "E-1001",
        "remediation": error.remediation,
        "details": {"field": "message"},
    }


def test_storage_path_error_is_a_validation_error():
    error = StoragePathError("../etc")

    assert isinstance(error, ValidationError)
    assert isinstance(error, ValueError)
    assert error.field == "path"
