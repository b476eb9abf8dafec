"""UAA client-credentials token exchange."""

import asyncio
from dataclasses import dataclass

import httpx
import structlog

from asset_migrate.config import TenantConfig
from asset_migrate.exceptions import AuthError

logger = structlog.get_logger(__name__)

TOKEN_PATH = "/oauth/token"
TOKEN_REQUEST_BODY = "grant_type=client_credentials&response_type=token"


@dataclass(frozen=True, slots=True)
class Token:
    """Bearer token scoped to one asset service tenant."""

    access_token: str
    zone_id: str
    tenant: str = "unknown"

    @property
    def authorization(self) -> str:
        """Value for the Authorization header."""
        return f"Bearer {self.access_token}"

    def __repr__(self) -> str:
        return f"Token(tenant={self.tenant!r}, zone_id={self.zone_id!r})"


async def acquire_token(
    http_client: httpx.AsyncClient,
    tenant: TenantConfig,
    label: str = "unknown",
) -> Token:
    """Exchange a tenant's client credentials for a bearer token.

    Args:
        http_client: HTTP client used for the token request.
        tenant: Tenant configuration holding the UAA URL and credentials.
        label: Human-readable tenant name (origin/destination).

    Returns:
        Token for the tenant's zone.

    Raises:
        AuthError: If the exchange fails for any reason.
    """
    url = f"{tenant.uaa_base}{TOKEN_PATH}"
    _logger = logger.bind(tenant=label, zone_id=tenant.zone_id, url=url)
    _logger.info("Retrieving token")

    try:
        response = await http_client.post(
            url,
            headers={
                "Authorization": f"Basic {tenant.uaa_credentials.get_secret_value()}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            content=TOKEN_REQUEST_BODY,
        )
    except httpx.HTTPError as e:
        _logger.error("Token request failed", error=str(e))
        raise AuthError(f"Token request failed: {e}", tenant=label) from e

    if response.status_code != 200:
        _logger.error("Token request rejected", status_code=response.status_code)
        raise AuthError(
            "Token request rejected", tenant=label, status_code=response.status_code
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise AuthError(
            "Token response is not valid JSON", tenant=label, status_code=200
        ) from e

    access_token = payload.get("access_token") if isinstance(payload, dict) else None
    if not access_token:
        raise AuthError(
            "Token response has no access_token", tenant=label, status_code=200
        )

    _logger.info("Token retrieved")
    return Token(access_token=access_token, zone_id=tenant.zone_id, tenant=label)


async def acquire_token_pair(
    http_client: httpx.AsyncClient,
    origin: TenantConfig,
    destination: TenantConfig,
) -> tuple[Token, Token]:
    """Acquire origin and destination tokens concurrently.

    Both requests always run to completion so that each failure is logged.

    Returns:
        Tuple of (origin_token, destination_token).

    Raises:
        AuthError: If either exchange fails.
    """
    results = await asyncio.gather(
        acquire_token(http_client, origin, "origin"),
        acquire_token(http_client, destination, "destination"),
        return_exceptions=True,
    )

    failed = []
    for label, result in zip(("origin", "destination"), results, strict=True):
        if isinstance(result, AuthError):
            logger.error(f"Error loading the {label} token.", error=str(result))
            failed.append(label)
        elif isinstance(result, BaseException):
            raise result

    if failed:
        raise AuthError(
            f"Could not acquire token for {' and '.join(failed)}",
            tenant=failed[0] if len(failed) == 1 else None,
        )

    origin_token, destination_token = results
    return origin_token, destination_token
