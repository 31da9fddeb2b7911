"""Unit tests for the error taxonomy and error responses."""

import pytest

from sitelog.core.db_client import DatabaseError, RecordNotFoundError
from sitelog.core.errors import (
    AuthorizationError,
    ErrorCode,
    ErrorSeverity,
    InvalidStateError,
    NotFoundError,
    SitelogError,
    StorageError,
    ValidationError,
    build_error_response,
)


@pytest.mark.unit
class TestBuildErrorResponse:
    """Tests for build_error_response."""

    @pytest.mark.parametrize(
        ("exception", "code"),
        [
            (ValidationError("bad date"), ErrorCode.ERR_VALIDATION),
            (AuthorizationError("not yours"), ErrorCode.ERR_PERMISSION_DENIED),
            (InvalidStateError("already approved"), ErrorCode.ERR_INVALID_STATE_TRANSITION),
            (NotFoundError("gone"), ErrorCode.ERR_NOT_FOUND),
            (StorageError("disk full"), ErrorCode.ERR_STORAGE),
        ],
    )
    def test_core_errors_keep_message(self, exception, code):
        response = build_error_response(exception)

        assert response.code == code
        assert response.message == str(exception)
        assert response.suggestion

    def test_store_errors_map_to_their_base_classes(self):
        assert build_error_response(RecordNotFoundError("x")).code == ErrorCode.ERR_NOT_FOUND
        assert build_error_response(DatabaseError("x")).code == ErrorCode.ERR_STORAGE

    def test_storage_errors_are_high_severity(self):
        assert build_error_response(StorageError("x")).severity == ErrorSeverity.HIGH

    def test_unknown_exception_hides_details(self):
        response = build_error_response(RuntimeError("secret connection string"))

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert "secret" not in response.message


@pytest.mark.unit
def test_every_core_error_is_a_sitelog_error():
    for error_type in (ValidationError, AuthorizationError, InvalidStateError, NotFoundError, StorageError):
        assert issubclass(error_type, SitelogError)
