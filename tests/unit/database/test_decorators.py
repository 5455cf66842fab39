"""Tests for database decorators and context managers."""
import pytest
from unittest.mock import MagicMock

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from sacred.core.exceptions import DatabaseError, NotFoundError, ValidationError
from sacred.core.logging_manager import SacredLogger
from sacred.database.decorators import (
    DatabaseOperation,
    handle_db_errors,
    log_database_operation,
    validate_metadata,
)


class _Service:
    """Minimal object carrying a logger, as the managers do."""

    def __init__(self, logger=None):
        self.logger = logger

    @handle_db_errors
    @log_database_operation("do_work")
    def work(self, value):
        return value * 2

    @handle_db_errors
    @log_database_operation("do_fail")
    def fail(self, error):
        raise error

    @validate_metadata(["name"])
    def create(self, metadata):
        return metadata["name"]


class TestLogDatabaseOperation:
    def test_logs_start_and_completion(self):
        mock_logger = MagicMock(spec=SacredLogger)
        assert _Service(mock_logger).work(21) == 42

        mock_logger.log_debug.assert_called_once()
        assert "Starting do_work" in mock_logger.log_debug.call_args[0][0]
        name, details = mock_logger.log_operation.call_args[0]
        assert name == "do_work_completed"
        assert details["success"] is True
        assert "duration_seconds" in details

    def test_logs_and_reraises_failure(self):
        mock_logger = MagicMock(spec=SacredLogger)
        with pytest.raises(NotFoundError):
            _Service(mock_logger).fail(NotFoundError("topic", "x"))
        mock_logger.log_error.assert_called_once()
        mock_logger.log_operation.assert_not_called()

    def test_works_without_logger(self):
        assert _Service().work(1) == 2


class TestHandleDbErrors:
    def test_integrity_error(self):
        with pytest.raises(DatabaseError, match="Data integrity violation"):
            _Service().fail(IntegrityError("statement", {}, Exception("duplicate")))

    def test_sqlalchemy_error(self):
        with pytest.raises(DatabaseError, match="Database operation failed"):
            _Service().fail(SQLAlchemyError("connection failed"))

    @pytest.mark.parametrize(
        "error", [NotFoundError("note", "n"), ValidationError("bad"), ValueError("plain")]
    )
    def test_domain_errors_pass_through(self, error):
        with pytest.raises(type(error)) as exc_info:
            _Service().fail(error)
        assert exc_info.value is error


class TestValidateMetadata:
    def test_passes(self):
        assert _Service().create({"name": "Romans"}) == "Romans"

    def test_keyword_argument(self):
        assert _Service().create(metadata={"name": "Romans"}) == "Romans"

    def test_missing(self):
        with pytest.raises(ValidationError):
            _Service().create({"description": "x"})


class TestDatabaseOperation:
    """Tests for DatabaseOperation context manager."""

    def test_successful_operation(self):
        mock_logger = MagicMock(spec=SacredLogger)

        with DatabaseOperation(mock_logger, "test_operation", {"topic_id": "t"}):
            result = 1 + 1

        assert result == 2
        call_args = mock_logger.log_operation.call_args
        assert call_args[0][0] == "test_operation_completed"
        assert call_args[0][1]["success"] is True
        assert call_args[0][1]["topic_id"] == "t"

    def test_none_logger(self):
        with DatabaseOperation(None, "test_operation"):
            pass

    def test_integrity_error_raises_database_error(self):
        mock_logger = MagicMock(spec=SacredLogger)

        with pytest.raises(DatabaseError) as exc_info:
            with DatabaseOperation(mock_logger, "test_operation"):
                raise IntegrityError("statement", {}, Exception("duplicate"))

        assert "Data integrity violation" in str(exc_info.value)
        mock_logger.log_error.assert_called_once()

    def test_sqlalchemy_error_raises_database_error(self):
        with pytest.raises(DatabaseError, match="Database operation failed"):
            with DatabaseOperation(None, "test_operation"):
                raise SQLAlchemyError("connection failed")

    def test_other_exceptions_propagate(self):
        mock_logger = MagicMock(spec=SacredLogger)

        with pytest.raises(ValueError):
            with DatabaseOperation(mock_logger, "test_operation"):
                raise ValueError("invalid value")

        mock_logger.log_error.assert_called_once()
