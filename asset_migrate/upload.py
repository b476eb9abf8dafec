"""Chunked upload of records to the destination tenant."""

import asyncio
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from asset_migrate.auth import Token
from asset_migrate.client import AssetClient
from asset_migrate.exceptions import AggregateUploadError

logger = structlog.get_logger(__name__)

ChunkCallback = Callable[[int, int], None]


@dataclass(slots=True)
class UploadSummary:
    """Outcome of a fully successful upload."""

    records: int
    chunks: int


def chunked(records: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield contiguous slices of at most ``size`` records."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    for i in range(0, len(records), size):
        yield records[i : i + size]


def migration_timestamp() -> str:
    """Current UTC time formatted like a JavaScript Date in JSON."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def stamp_records(
    records: Sequence[dict[str, Any]],
    field: str,
    timestamp: str,
) -> list[dict[str, Any]]:
    """Return copies of the records with the migration timestamp set."""
    return [{**record, field: timestamp} for record in records]


async def upload_records(
    client: AssetClient,
    url: str,
    token: Token,
    records: Sequence[dict[str, Any]],
    chunk_size: int,
    *,
    timestamp_field: str = "migrationDate",
    on_chunk: ChunkCallback | None = None,
) -> UploadSummary:
    """Post records in chunks, all chunks concurrently.

    Chunks that were written before another chunk failed stay applied.

    Args:
        client: Connected asset client.
        url: Destination collection URL.
        token: Destination tenant token.
        records: Records to upload, in source order.
        chunk_size: Maximum number of records per request.
        timestamp_field: Field stamped with the migration time.
        on_chunk: Called with (chunk_index, chunk_length) after each successful post.

    Returns:
        Number of records and chunks uploaded.

    Raises:
        AggregateUploadError: If any chunk fails.
    """
    _logger = logger.bind(url=url, records=len(records), chunk_size=chunk_size)
    chunks = list(chunked(records, chunk_size))

    async def post_chunk(index: int, chunk: Sequence[dict[str, Any]]) -> None:
        _logger.info(
            f"Posting {len(chunk)} to the destination asset service instance",
            chunk=index,
        )
        body = stamp_records(chunk, timestamp_field, migration_timestamp())
        await client.call(url, token, method="POST", body=body)
        if on_chunk is not None:
            on_chunk(index, len(chunk))

    results = await asyncio.gather(
        *(post_chunk(i, chunk) for i, chunk in enumerate(chunks)),
        return_exceptions=True,
    )

    failures = {}
    for index, result in enumerate(results):
        if isinstance(result, Exception):
            failures[index] = result
        elif isinstance(result, BaseException):
            raise result

    if failures:
        _logger.error(
            "Chunk uploads failed",
            failed_chunks=sorted(failures),
            total_chunks=len(chunks),
        )
        raise AggregateUploadError(len(chunks), failures)

    return UploadSummary(records=len(records), chunks=len(chunks))
