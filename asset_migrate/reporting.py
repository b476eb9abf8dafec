"""Progress reporting hooks for the migration orchestrator."""

from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from asset_migrate.orchestration import (
        CollectionDescriptor,
        CollectionResult,
        MigrationResults,
    )

logger = structlog.get_logger(__name__)


class MigrationReporter(Protocol):
    """Receives progress events while a migration runs.

    Hooks are called from the event loop and must not block.
    """

    def tokens_acquired(self) -> None: ...

    def collections_discovered(
        self, collections: list["CollectionDescriptor"]
    ) -> None: ...

    def page_loaded(self, collection: str, loaded: int, expected: int) -> None: ...

    def chunk_posted(self, collection: str, size: int) -> None: ...

    def collection_finished(self, result: "CollectionResult") -> None: ...

    def run_finished(self, results: "MigrationResults") -> None: ...


class LoggingReporter:
    """Reporter that writes every event to the structured log."""

    def __init__(self) -> None:
        self._logger = logger.bind(reporter="logging")

    def tokens_acquired(self) -> None:
        self._logger.info("Tokens acquired for origin and destination")

    def collections_discovered(self, collections: list["CollectionDescriptor"]) -> None:
        total = sum(c.count for c in collections)
        self._logger.info(
            f"Found {len(collections)} domain objects with a total of "
            f"{total} domain object instances",
            collections=[c.name for c in collections],
        )

    def page_loaded(self, collection: str, loaded: int, expected: int) -> None:
        self._logger.info(
            f"Loaded {loaded} of {expected} domain object instances",
            collection=collection,
        )

    def chunk_posted(self, collection: str, size: int) -> None:
        self._logger.debug("Chunk posted", collection=collection, size=size)

    def collection_finished(self, result: "CollectionResult") -> None:
        if result.succeeded:
            self._logger.info(result.message, collection=result.name)
        else:
            self._logger.error(
                result.message, collection=result.name, error=result.error
            )

    def run_finished(self, results: "MigrationResults") -> None:
        summary = results.summary()
        self._logger.info("Migration run finished", success=results.success, **summary)
