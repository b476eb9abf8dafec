"""Migration orchestrator for moving asset collections between tenants."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from asset_migrate.auth import Token, acquire_token_pair
from asset_migrate.client import AssetClient
from asset_migrate.config import Config
from asset_migrate.exceptions import AggregateUploadError, AuthError, TransportError
from asset_migrate.pagination import fetch_all
from asset_migrate.reporting import LoggingReporter, MigrationReporter
from asset_migrate.upload import upload_records

logger = structlog.get_logger(__name__)

CREDENTIALS_ERROR_MESSAGE = "Please check your UAA credentials"
LISTING_ERROR_MESSAGE = "There was an error listing asset domain objects"


class RunStatus(str, Enum):
    """Terminal state of a migration run."""

    PENDING = "pending"
    COMPLETED = "completed"
    CREDENTIALS_ERROR = "credentials_error"
    LISTING_ERROR = "listing_error"


class CollectionStatus(str, Enum):
    """State of a single collection's pipeline."""

    PENDING = "pending"
    PAGINATING = "paginating"
    UPLOADING = "uploading"
    MIGRATED = "migrated"
    PAGINATION_FAILED = "pagination_failed"
    UPLOAD_FAILED = "upload_failed"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class CollectionDescriptor:
    """A collection listed by the origin tenant."""

    name: str
    count: int = 0


@dataclass(slots=True)
class CollectionResult:
    """Outcome of migrating one collection."""

    name: str
    expected_count: int
    status: CollectionStatus = CollectionStatus.PENDING
    loaded: int = 0
    uploaded: int = 0
    chunks: int = 0
    failed_chunks: list[int] = field(default_factory=list)
    error: str | None = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == CollectionStatus.MIGRATED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "expected_count": self.expected_count,
            "status": self.status.value,
            "loaded": self.loaded,
            "uploaded": self.uploaded,
            "chunks": self.chunks,
            "failed_chunks": self.failed_chunks,
            "error": self.error,
            "message": self.message,
        }


@dataclass(slots=True)
class MigrationResults:
    """Outcome of a whole migration run."""

    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime | None = None
    status: RunStatus = RunStatus.PENDING
    message: str = ""
    error: str | None = None
    collections: list[CollectionResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True if the run completed and every collection was migrated."""
        return self.status == RunStatus.COMPLETED and all(
            c.succeeded for c in self.collections
        )

    @property
    def duration_seconds(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    def summary(self) -> dict[str, int]:
        """Aggregate counts across all collections."""
        migrated = sum(1 for c in self.collections if c.succeeded)
        return {
            "total_collections": len(self.collections),
            "migrated_collections": migrated,
            "failed_collections": len(self.collections) - migrated,
            "expected_records": sum(c.expected_count for c in self.collections),
            "loaded_records": sum(c.loaded for c in self.collections),
            "uploaded_records": sum(c.uploaded for c in self.collections),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_seconds": self.duration_seconds,
            "status": self.status.value,
            "success": self.success,
            "message": self.message,
            "error": self.error,
            "summary": self.summary(),
            "collections": [c.to_dict() for c in self.collections],
        }


class MigrationOrchestrator:
    """Orchestrates the migration of asset collections from origin to destination.

    Handles:
    - Token acquisition for both tenants
    - Collection discovery
    - Per-collection pagination and chunked upload, all collections concurrently
    - Progress reporting and per-collection failure isolation
    """

    def __init__(
        self,
        config: Config,
        reporter: MigrationReporter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the migration orchestrator.

        Args:
            config: Migration configuration.
            reporter: Receives progress events; logs them if not given.
            transport: Optional httpx transport for the shared HTTP client.
        """
        self.config = config
        self.reporter: MigrationReporter = reporter or LoggingReporter()
        self._transport = transport
        self._logger = logger.bind(
            origin_zone=config.origin.zone_id,
            destination_zone=config.destination.zone_id,
        )

    async def migrate_all(self) -> MigrationResults:
        """Migrate every collection of the origin tenant to the destination.

        Returns:
            Results with one entry per migrated collection. A credentials or
            listing failure ends the run early with no collection entries.
        """
        results = MigrationResults()
        self._logger.info("Starting migration")

        async with AssetClient(self.config.migration, self._transport) as client:
            try:
                origin_token, dest_token = await self._acquire_tokens(client)
            except AuthError as e:
                results.status = RunStatus.CREDENTIALS_ERROR
                results.message = CREDENTIALS_ERROR_MESSAGE
                results.error = str(e)
                return self._finish(results)

            try:
                collections = await self._list_collections(client, origin_token)
            except TransportError as e:
                self._logger.error(LISTING_ERROR_MESSAGE, error=str(e))
                results.status = RunStatus.LISTING_ERROR
                results.message = LISTING_ERROR_MESSAGE
                results.error = str(e)
                return self._finish(results)

            self.reporter.collections_discovered(collections)
            results.collections = await self._migrate_collections(
                client, collections, origin_token, dest_token
            )

        results.status = RunStatus.COMPLETED
        summary = results.summary()
        results.message = (
            f"Migrated {summary['migrated_collections']} of "
            f"{summary['total_collections']} domain objects"
        )
        return self._finish(results)

    async def discover(self) -> list[CollectionDescriptor]:
        """Acquire both tokens and list the collections that would be migrated.

        Raises:
            AuthError: If either token exchange fails.
            TransportError: If the collection listing fails.
        """
        async with AssetClient(self.config.migration, self._transport) as client:
            origin_token, _ = await self._acquire_tokens(client)
            return await self._list_collections(client, origin_token)

    async def _acquire_tokens(self, client: AssetClient) -> tuple[Token, Token]:
        self._logger.info("Retrieving tokens for origin and destination")
        tokens = await acquire_token_pair(
            client.http, self.config.origin, self.config.destination
        )
        self.reporter.tokens_acquired()
        return tokens

    async def _list_collections(
        self, client: AssetClient, token: Token
    ) -> list[CollectionDescriptor]:
        """List the origin tenant's collections, applying the configured filter.

        Raises:
            TransportError: If the listing fails or is malformed.
        """
        url = self.config.origin.asset_base
        self._logger.info("Retrieving domain objects", url=url)
        response = await client.call(url, token)

        body = response.body if response.body is not None else []
        if not isinstance(body, list):
            raise TransportError(
                f"Expected a list of domain objects, got {type(body).__name__}",
                method="GET",
                url=url,
            )

        collections = []
        for entry in body:
            if not isinstance(entry, dict) or not entry.get("collection"):
                raise TransportError(
                    f"Domain object entry has no collection name: {entry!r}",
                    method="GET",
                    url=url,
                )
            count = entry.get("count") or 0
            if isinstance(count, bool) or not isinstance(count, (int, str)):
                count = None
            try:
                count = int(count)
            except (TypeError, ValueError):
                raise TransportError(
                    f"Domain object entry has a non-numeric count: {entry!r}",
                    method="GET",
                    url=url,
                ) from None
            collections.append(
                CollectionDescriptor(name=str(entry["collection"]), count=count)
            )

        if self.config.collections is not None:
            wanted = set(self.config.collections)
            missing = wanted - {c.name for c in collections}
            if missing:
                self._logger.warning(
                    "Requested collections not found in origin",
                    missing=sorted(missing),
                )
            collections = [c for c in collections if c.name in wanted]

        return collections

    async def _migrate_collections(
        self,
        client: AssetClient,
        collections: list[CollectionDescriptor],
        origin_token: Token,
        dest_token: Token,
    ) -> list[CollectionResult]:
        """Run every collection's pipeline concurrently and wait for all of them."""
        max_concurrent = self.config.migration.max_concurrent
        semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None

        async def run(descriptor: CollectionDescriptor) -> CollectionResult:
            if semaphore is None:
                return await self._migrate_collection(
                    client, descriptor, origin_token, dest_token
                )
            async with semaphore:
                return await self._migrate_collection(
                    client, descriptor, origin_token, dest_token
                )

        outcomes = await asyncio.gather(
            *(run(descriptor) for descriptor in collections),
            return_exceptions=True,
        )

        results = []
        for descriptor, outcome in zip(collections, outcomes, strict=True):
            if isinstance(outcome, CollectionResult):
                results.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            self._logger.error(
                "Collection migration crashed",
                collection=descriptor.name,
                error=str(outcome),
                exc_info=outcome,
            )
            result = CollectionResult(
                name=descriptor.name,
                expected_count=descriptor.count,
                status=CollectionStatus.ERROR,
                error=str(outcome),
                message=f"There was an error migrating the {descriptor.name} domain object instances",
            )
            self.reporter.collection_finished(result)
            results.append(result)
        return results

    async def _migrate_collection(
        self,
        client: AssetClient,
        descriptor: CollectionDescriptor,
        origin_token: Token,
        dest_token: Token,
    ) -> CollectionResult:
        """Paginate one collection, then upload it; never raises for I/O failures."""
        result = CollectionResult(name=descriptor.name, expected_count=descriptor.count)
        timeout = self.config.migration.collection_timeout

        try:
            await asyncio.wait_for(
                self._run_pipeline(client, descriptor, origin_token, dest_token, result),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            phase = "loading" if result.status == CollectionStatus.PAGINATING else "posting"
            result.status = CollectionStatus.TIMED_OUT
            result.error = f"Timed out after {timeout} seconds"
            result.message = (
                f"Timed out {phase} the {descriptor.name} domain object instances"
            )

        self.reporter.collection_finished(result)
        return result

    async def _run_pipeline(
        self,
        client: AssetClient,
        descriptor: CollectionDescriptor,
        origin_token: Token,
        dest_token: Token,
        result: CollectionResult,
    ) -> None:
        name = descriptor.name
        migration = self.config.migration
        _logger = self._logger.bind(collection=name)
        _logger.info(f"Loading data for the {name} domain object")

        source_url = (
            f"{self.config.origin.asset_base}/{quote(name, safe='')}"
            f"?pageSize={migration.page_size}"
        )
        dest_url = f"{self.config.destination.asset_base}/{quote(name, safe='')}"

        def on_page(loaded: int, expected: int) -> None:
            result.loaded = loaded
            self.reporter.page_loaded(name, loaded, expected)

        def on_chunk(index: int, size: int) -> None:
            result.uploaded += size
            self.reporter.chunk_posted(name, size)

        result.status = CollectionStatus.PAGINATING
        try:
            records = await fetch_all(
                client,
                source_url,
                origin_token,
                descriptor.count,
                max_pages=migration.max_pages,
                on_page=on_page,
            )
        except TransportError as e:
            result.status = CollectionStatus.PAGINATION_FAILED
            result.loaded = 0
            result.error = str(e)
            result.message = (
                f"There was an error loading the {name} domain object instances"
            )
            return

        result.loaded = len(records)
        _logger.info(f"Finished loading {len(records)} domain object instances")
        _logger.info(
            f"Posting {len(records)} domain object instances to "
            f"{self.config.destination.zone_id}"
        )

        result.status = CollectionStatus.UPLOADING
        try:
            summary = await upload_records(
                client,
                dest_url,
                dest_token,
                records,
                migration.chunk_size,
                timestamp_field=migration.timestamp_field,
                on_chunk=on_chunk,
            )
        except AggregateUploadError as e:
            result.status = CollectionStatus.UPLOAD_FAILED
            result.chunks = e.total_chunks
            result.failed_chunks = e.failed_chunks
            result.error = str(e)
            result.message = (
                f"There was an error posting the {name} domain object instances"
            )
            return

        result.status = CollectionStatus.MIGRATED
        result.chunks = summary.chunks
        result.message = f"Finished posting {summary.records} domain object instances."

    def _finish(self, results: MigrationResults) -> MigrationResults:
        results.end_time = datetime.now()
        if results.status != RunStatus.COMPLETED:
            self._logger.error(results.message, error=results.error)
        else:
            self._logger.info(
                "Migration completed",
                duration_seconds=results.duration_seconds,
                **results.summary(),
            )
        self.reporter.run_finished(results)
        return results
