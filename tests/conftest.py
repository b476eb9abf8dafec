"""Shared pytest fixtures for the asset migration tests."""

import json
from collections import defaultdict
from typing import Any

import httpx
import pytest

from asset_migrate.auth import Token
from asset_migrate.config import Config, MigrationConfig, TenantConfig

ORIGIN_UAA = "https://uaa-origin.test"
DEST_UAA = "https://uaa-dest.test"
ORIGIN_ASSET = "https://asset-origin.test/v1"
DEST_ASSET = "https://asset-dest.test/v1"
ORIGIN_ZONE = "origin-zone"
DEST_ZONE = "dest-zone"


def make_records(collection: str, count: int, start: int = 0) -> list[dict[str, Any]]:
    """Build simple records with a unique uri each."""
    return [
        {"uri": f"/{collection}/{i}", "name": f"{collection}-{i}"}
        for i in range(start, start + count)
    ]


class FakeAssetService:
    """In-memory stand-in for two UAA instances and two asset instances.

    Serves through httpx.MockTransport and records every request.
    """

    def __init__(self) -> None:
        self.token_status = {"uaa-origin.test": 200, "uaa-dest.test": 200}
        self.listing_status = 200
        self.domain_objects: list[dict[str, Any]] = []
        self.pages: dict[str, list[list[dict[str, Any]]]] = {}
        self.failing_pages: dict[str, set[int]] = defaultdict(set)
        self.failing_uris: set[str] = set()
        self.posted: dict[str, list[list[dict[str, Any]]]] = defaultdict(list)
        self.requests: list[httpx.Request] = []

    def add_collection(
        self,
        name: str,
        records: list[dict[str, Any]],
        page_size: int = 1000,
        count: int | None = None,
    ) -> None:
        """Register a collection, split into pages of page_size records."""
        self.domain_objects.append(
            {"collection": name, "count": len(records) if count is None else count}
        )
        pages = [records[i : i + page_size] for i in range(0, len(records), page_size)]
        self.pages[name] = pages or [[]]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def catalog_requests(self) -> list[httpx.Request]:
        """Requests sent to either asset instance."""
        return [r for r in self.requests if r.url.host.startswith("asset-")]

    def page_requests(self, name: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.url.host == "asset-origin.test" and r.url.path.endswith(f"/{name}")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host.startswith("uaa-"):
            status = self.token_status[host]
            if status != 200:
                return httpx.Response(status, json={"error": "unauthorized"})
            return httpx.Response(
                200, json={"access_token": f"token-{host}", "token_type": "bearer"}
            )

        if host == "asset-origin.test":
            if request.url.path == "/v1":
                if self.listing_status != 200:
                    return httpx.Response(self.listing_status, text="listing failed")
                return httpx.Response(200, json=self.domain_objects)

            name = request.url.path.rsplit("/", 1)[-1]
            page = int(request.url.params.get("page", "0"))
            if page in self.failing_pages[name]:
                return httpx.Response(500, text="page failed")

            pages = self.pages[name]
            headers = {}
            if page + 1 < len(pages):
                headers["Link"] = (
                    f"<{ORIGIN_ASSET}/{name}?pageSize=1000&page={page + 1}>; "
                    'rel="next"'
                )
            return httpx.Response(200, json=pages[page], headers=headers)

        if host == "asset-dest.test":
            name = request.url.path.rsplit("/", 1)[-1]
            body = json.loads(request.content)
            self.posted[name].append(body)
            if any(record.get("uri") in self.failing_uris for record in body):
                return httpx.Response(500, text="write failed")
            return httpx.Response(204)

        return httpx.Response(404)


@pytest.fixture
def origin_tenant():
    """Create the origin tenant configuration."""
    return TenantConfig(
        uaa_url=ORIGIN_UAA,
        uaa_credentials="b3JpZ2luOnNlY3JldA==",
        asset_url=ORIGIN_ASSET,
        zone_id=ORIGIN_ZONE,
    )


@pytest.fixture
def destination_tenant():
    """Create the destination tenant configuration."""
    return TenantConfig(
        uaa_url=DEST_UAA,
        uaa_credentials="ZGVzdDpzZWNyZXQ=",
        asset_url=DEST_ASSET,
        zone_id=DEST_ZONE,
    )


@pytest.fixture
def migration_config():
    """Create a test migration configuration."""
    return MigrationConfig(page_size=1000, chunk_size=1000, request_timeout=5.0)


@pytest.fixture
def config(origin_tenant, destination_tenant, migration_config):
    """Create a full test configuration."""
    return Config(
        origin=origin_tenant,
        destination=destination_tenant,
        migration=migration_config,
    )


@pytest.fixture
def fake_service():
    """Create an empty fake asset service."""
    return FakeAssetService()


@pytest.fixture
def origin_token():
    return Token(access_token="origin-token", zone_id=ORIGIN_ZONE, tenant="origin")


@pytest.fixture
def dest_token():
    return Token(access_token="dest-token", zone_id=DEST_ZONE, tenant="destination")
