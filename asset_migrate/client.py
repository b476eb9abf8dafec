"""Asset service HTTP client wrapper."""

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from asset_migrate.auth import Token
from asset_migrate.config import MigrationConfig
from asset_migrate.exceptions import TransportError

logger = structlog.get_logger(__name__)

ZONE_HEADER = "Predix-Zone-Id"
FORCE_WRITE_HEADER = "x-force-write"


@dataclass(slots=True)
class AssetResponse:
    """Decoded body and headers of a successful asset service call."""

    body: Any
    headers: httpx.Headers = field(default_factory=httpx.Headers)


class AssetClient:
    """Thin wrapper around httpx.AsyncClient for asset service calls.

    One client is shared by both tenants; tenant identity travels with the
    Token passed to each call.
    """

    def __init__(
        self,
        migration_config: MigrationConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the asset client wrapper.

        Args:
            migration_config: Migration configuration with timeout settings.
            transport: Optional httpx transport, used to stub the network.
        """
        self.migration_config = migration_config
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None
        self._logger = logger.bind(component="asset_client")

    async def __aenter__(self) -> "AssetClient":
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        if self._http_client is not None:
            return

        self._http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.migration_config.request_timeout),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
            transport=self._transport,
        )
        self._logger.debug("HTTP client created")

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._http_client is not None:
            try:
                await self._http_client.aclose()
            except Exception as e:
                self._logger.warning("Error closing HTTP client", error=str(e))
            finally:
                self._http_client = None

    @property
    def http(self) -> httpx.AsyncClient:
        """Get the underlying httpx client.

        Raises:
            TransportError: If not connected.
        """
        if self._http_client is None:
            raise TransportError("Asset client is not connected")
        return self._http_client

    async def call(
        self,
        url: str,
        token: Token,
        method: str = "GET",
        body: Any = None,
    ) -> AssetResponse:
        """Read from or write to an asset service URL.

        Args:
            url: Absolute resource URL.
            token: Token of the tenant owning the resource.
            method: GET or POST.
            body: JSON-serializable request body for POST.

        Returns:
            Decoded body (None when the response is empty) and response headers.

        Raises:
            TransportError: On network errors, non-2xx status or undecodable body.
        """
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"Unsupported method: {method}")

        headers = {
            ZONE_HEADER: token.zone_id,
            "Authorization": token.authorization,
        }
        if method == "POST":
            headers[FORCE_WRITE_HEADER] = "true"

        self._logger.debug(
            "Making asset request",
            method=method,
            url=url,
            zone_id=token.zone_id,
            has_body=body is not None,
        )

        try:
            response = await self.http.request(
                method,
                url,
                headers=headers,
                json=body if method == "POST" else None,
            )
        except httpx.HTTPError as e:
            self._logger.warning("Asset request failed", method=method, url=url, error=str(e))
            raise TransportError(
                f"Request failed: {e.__class__.__name__}", method=method, url=url
            ) from e

        if not str(response.status_code).startswith("2"):
            self._logger.warning(
                "Asset request returned error status",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise TransportError(
                "Unexpected status",
                method=method,
                url=url,
                status_code=response.status_code,
                response_text=response.text,
            )

        decoded = None
        if response.content:
            try:
                decoded = response.json()
            except ValueError as e:
                raise TransportError(
                    "Response body is not valid JSON",
                    method=method,
                    url=url,
                    status_code=response.status_code,
                    response_text=response.text,
                ) from e

        return AssetResponse(body=decoded, headers=response.headers)
