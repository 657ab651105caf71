"""Client-credentials authentication against Microsoft Entra ID."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

import httpx

from .env import load_env, read_prefixed
from .errors import ConnectionFailure

load_env()

logger = logging.getLogger(__name__)

TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
DEFAULT_SCOPE = "https://*.asazure.windows.net/.default"
EXPIRY_MARGIN_SECONDS = 60

REQUIRED_FIELDS = (
    "CLIENT_ID",
    "CLIENT_SECRET",
)


@dataclass(frozen=True)
class ClientCredentials:
    tenant: str
    client_id: str
    client_secret: str


def load_client_credentials(tenant: str, prefix: str = "AAS") -> ClientCredentials:
    """Read ``{PREFIX}_CLIENT_ID`` / ``{PREFIX}_CLIENT_SECRET`` from the environment."""
    values, missing = read_prefixed(prefix, REQUIRED_FIELDS)
    if missing:
        raise ConnectionFailure(
            "Missing service principal environment variables: {}".format(
                ", ".join(sorted(missing))
            )
        )
    return ClientCredentials(
        tenant=tenant,
        client_id=values["CLIENT_ID"],
        client_secret=values["CLIENT_SECRET"],
    )


class ClientCredentialsAuth:
    """OAuth2 client credentials flow that installs a bearer token on a client."""

    grant_type = "client_credentials"

    def __init__(
        self,
        credentials: ClientCredentials,
        scope: str = DEFAULT_SCOPE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._credentials = credentials
        self._scope = scope
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at: float | None = None
        self.authenticated = False

    @property
    def token_url(self) -> str:
        return TOKEN_URL.format(tenant=self._credentials.tenant)

    @property
    def auth_data(self) -> dict[str, str]:
        return {
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret,
            "grant_type": self.grant_type,
            "scope": self._scope,
        }

    @property
    def access_token(self) -> str:
        if not self.authenticated or self._access_token is None:
            raise ValueError("Cannot access access token: not authenticated")
        return self._access_token

    def expired(self) -> bool:
        """True once the token is within ``EXPIRY_MARGIN_SECONDS`` of its ``expires_in``."""
        if self._expires_at is None:
            return False
        return self._clock() >= self._expires_at - EXPIRY_MARGIN_SECONDS

    def __call__(self, client: httpx.Client) -> None:
        logger.info("Requesting token for tenant %s", self._credentials.tenant)
        try:
            response = client.post(self.token_url, data=self.auth_data)
        except httpx.HTTPError as exc:
            raise ConnectionFailure(f"Token request failed: {exc}") from exc
        if response.status_code != 200:
            raise ConnectionFailure(
                f"Token request rejected with HTTP {response.status_code}: {response.text}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ConnectionFailure(f"Token response is not JSON: {response.text}") from exc
        token = payload.get("access_token")
        if not token:
            raise ConnectionFailure("Token response did not contain an access_token")

        expires_in = payload.get("expires_in")
        self._expires_at = self._clock() + float(expires_in) if expires_in else None
        self._access_token = token
        client.headers.update({"Authorization": f"Bearer {token}"})
        self.authenticated = True
        logger.info("Service principal authenticated")


__all__ = [
    "ClientCredentials",
    "ClientCredentialsAuth",
    "DEFAULT_SCOPE",
    "TOKEN_URL",
    "load_client_credentials",
]
