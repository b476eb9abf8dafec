"""Unit tests for the logging reporter."""

from unittest.mock import Mock

from asset_migrate.orchestration import (
    CollectionDescriptor,
    CollectionResult,
    CollectionStatus,
    MigrationResults,
    RunStatus,
)
from asset_migrate.reporting import LoggingReporter


def reporter_with_mock_logger():
    reporter = LoggingReporter()
    reporter._logger = Mock()
    return reporter


def test_collections_discovered_reports_totals():
    reporter = reporter_with_mock_logger()

    reporter.collections_discovered(
        [CollectionDescriptor("sensors", 2500), CollectionDescriptor("turbines", 10)]
    )

    message = reporter._logger.info.call_args.args[0]
    assert message == (
        "Found 2 domain objects with a total of 2510 domain object instances"
    )


def test_page_loaded_message():
    reporter = reporter_with_mock_logger()

    reporter.page_loaded("sensors", 1000, 2500)

    reporter._logger.info.assert_called_once_with(
        "Loaded 1000 of 2500 domain object instances", collection="sensors"
    )


def test_failed_collection_logged_as_error():
    reporter = reporter_with_mock_logger()
    result = CollectionResult(
        name="B",
        expected_count=10,
        status=CollectionStatus.PAGINATION_FAILED,
        error="Unexpected status | Status: 500",
        message="There was an error loading the B domain object instances",
    )

    reporter.collection_finished(result)

    reporter._logger.error.assert_called_once_with(
        "There was an error loading the B domain object instances",
        collection="B",
        error="Unexpected status | Status: 500",
    )
    reporter._logger.info.assert_not_called()


def test_run_finished_logs_summary():
    reporter = reporter_with_mock_logger()

    reporter.run_finished(MigrationResults(status=RunStatus.COMPLETED))

    kwargs = reporter._logger.info.call_args.kwargs
    assert kwargs["success"] is True
    assert kwargs["total_collections"] == 0
