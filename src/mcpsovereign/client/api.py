"""HTTP client for the mcpSovereign marketplace API.

This module provides:
- SovereignClient: async HTTP client for the marketplace REST endpoints
- Agent: authenticated agent record
- SignMessage: type of the wallet signing callback

Every call returns an Ok or Err value. Transport failures, HTTP errors and
`success: false` envelopes are all reported as Err; nothing is raised.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from mcpsovereign.core.config import ClientConfig
from mcpsovereign.core.result import BillingInfo, Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

SignMessage = Callable[[str], Awaitable[str]]

NETWORK_ERROR_CODE = "NETWORK_ERROR"
INVALID_RESPONSE_CODE = "INVALID_RESPONSE"

_STATUS_KINDS = {
    401: ErrorKind.AUTHENTICATION,
    402: ErrorKind.INSUFFICIENT_CREDITS,
    404: ErrorKind.NOT_FOUND,
}


@dataclass
class Agent:
    """Agent record returned by /auth/verify and /auth/me."""

    id: str
    wallet_address: str
    display_name: str | None
    trade: str | None
    level: int
    xp: str
    credit_balance: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Agent:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            wallet_address=data.get("wallet_address", ""),
            display_name=data.get("display_name"),
            trade=data.get("trade"),
            level=int(data.get("level", 0)),
            xp=str(data.get("xp", "0")),
            credit_balance=str(data.get("credit_balance", "0")),
        )


def _drop_none(params: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


class SovereignClient:
    """Async HTTP client for the marketplace API."""

    def __init__(
        self,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: API URL, bearer token and timeouts.
            transport: Optional custom transport (used in tests).
        """
        self._config = config
        headers = {"Content-Type": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers=headers,
            transport=transport,
        )

    @property
    def token(self) -> str | None:
        """Current bearer token."""
        return self._config.token

    def set_token(self, token: str | None) -> None:
        """Attach (or clear) the bearer token for subsequent calls."""
        self._config.token = token
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> SovereignClient:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    # === Transport ===

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Result[Any]:
        """Send a request and unwrap the {success, data, error} envelope.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL (or an absolute URL).
            json: Optional JSON body.
            params: Optional query parameters; None values are dropped.

        Returns:
            Ok with the envelope's data, or Err.
        """
        try:
            response = await self._client.request(
                method,
                path,
                json=json,
                params=_drop_none(params) if params else None,
            )
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            return Err(
                ErrorKind.NETWORK,
                str(e) or e.__class__.__name__,
                code=NETWORK_ERROR_CODE,
            )
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Result[Any]:
        """Turn an HTTP response into Ok/Err."""
        billing = BillingInfo.from_headers(response.headers)
        status = response.status_code

        try:
            body = response.json()
        except ValueError:
            return Err(
                ErrorKind.INVALID_RESPONSE,
                f"Response is not valid JSON (HTTP {status})",
                code=INVALID_RESPONSE_CODE,
                status_code=status,
                billing=billing,
            )
        if not isinstance(body, dict):
            return Err(
                ErrorKind.INVALID_RESPONSE,
                f"Unexpected response body (HTTP {status})",
                code=INVALID_RESPONSE_CODE,
                status_code=status,
                billing=billing,
            )

        if status >= 400 or not body.get("success", False):
            error = body.get("error") or {}
            if not isinstance(error, dict):
                error = {"message": str(error)}
            return Err(
                _STATUS_KINDS.get(status, ErrorKind.REMOTE),
                error.get("message") or f"Request failed (HTTP {status})",
                code=error.get("code"),
                status_code=status,
                details={k: v for k, v in error.items() if k not in ("code", "message")},
                billing=billing,
            )

        return Ok(body.get("data"), billing)

    # === Health check ===

    async def health_check(self) -> bool:
        """Check if the API is healthy.

        The health endpoint sits one level above the API version segment
        (e.g., /api/v1 -> /api/health).

        Returns:
            True if the server answered 200.
        """
        url = httpx.URL(self._config.api_url + "/").join("../health")
        try:
            response = await self._client.get(url)
        except httpx.RequestError:
            return False
        return response.status_code == 200

    # === Authentication ===

    async def authenticate(
        self,
        wallet_address: str,
        sign_message: SignMessage,
    ) -> Result[dict[str, Any]]:
        """Authenticate with a wallet challenge.

        Requests a challenge, signs its message with the caller's wallet
        signer and verifies the signature. On success the returned token is
        attached to subsequent calls.

        Args:
            wallet_address: Wallet address of the agent.
            sign_message: Async callback returning the signature of a message.

        Returns:
            Ok with {"token", "agent": Agent, "is_new_agent"}, or Err.
        """
        challenge = await self.request(
            "POST", "/auth/challenge", json={"wallet_address": wallet_address}
        )
        if isinstance(challenge, Err):
            return challenge
        if not isinstance(challenge.value, dict) or "challenge" not in challenge.value:
            return Err(
                ErrorKind.INVALID_RESPONSE,
                "Challenge response is missing the challenge",
                code=INVALID_RESPONSE_CODE,
            )

        message = challenge.value.get("message", challenge.value["challenge"])
        signature = await sign_message(message)

        verified = await self.request(
            "POST",
            "/auth/verify",
            json={
                "wallet_address": wallet_address,
                "challenge": challenge.value["challenge"],
                "signature": signature,
            },
        )
        if isinstance(verified, Err):
            return verified

        try:
            token = verified.value["token"]
            agent = Agent.from_dict(verified.value["agent"])
        except (KeyError, TypeError, ValueError) as e:
            return Err(
                ErrorKind.INVALID_RESPONSE,
                f"Malformed verify response: {e!r}",
                code=INVALID_RESPONSE_CODE,
            )

        self.set_token(token)
        logger.info("Authenticated as agent %s", agent.id)
        return Ok(
            {
                "token": token,
                "agent": agent,
                "is_new_agent": bool(verified.value.get("is_new_agent", False)),
            },
            verified.billing,
        )

    async def get_agent_info(self) -> Result[Agent]:
        """Get the authenticated agent."""
        result = await self.request("GET", "/auth/me")
        if isinstance(result, Err):
            return result
        try:
            return Ok(Agent.from_dict(result.value), result.billing)
        except (KeyError, TypeError, ValueError) as e:
            return Err(
                ErrorKind.INVALID_RESPONSE,
                f"Malformed agent record: {e!r}",
                code=INVALID_RESPONSE_CODE,
            )

    # === Sync ===

    async def push_manifest(self, manifest: dict[str, Any]) -> Result[Any]:
        """Send a sync manifest. Returns the raw SyncResult payload."""
        return await self.request("POST", "/sync/push", json={"manifest": manifest})

    async def pull(self, since: str | None = None) -> Result[Any]:
        """Fetch purchases, reviews and stats since a cursor."""
        return await self.request("POST", "/sync/pull", json={"since": since})

    async def get_sync_status(self) -> Result[Any]:
        """Get the remote sync status."""
        return await self.request("GET", "/sync/status")

    # === Credits ===

    async def get_balance(self) -> Result[Any]:
        """Get the agent's credit balance."""
        return await self.request("GET", "/credits/balance")

    # === Marketplace ===

    async def get_categories(self) -> Result[Any]:
        """List product categories."""
        return await self.request("GET", "/products/categories")

    async def browse_products(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        page: int | None = None,
        limit: int | None = None,
        sort: str | None = None,
    ) -> Result[Any]:
        """Browse marketplace products.

        Args:
            category: Category slug filter.
            search: Free-text search.
            page: Page number.
            limit: Page size.
            sort: newest, popular, price_asc, price_desc or rating.
        """
        return await self.request(
            "GET",
            "/products",
            params={
                "category": category,
                "search": search,
                "page": page,
                "limit": limit,
                "sort": sort,
            },
        )

    async def get_product_details(self, product_id: str) -> Result[Any]:
        """Get a marketplace product with its reviews."""
        return await self.request("GET", f"/products/{product_id}")

    async def purchase_product(self, product_id: str) -> Result[Any]:
        """Purchase a marketplace product."""
        return await self.request("POST", f"/products/{product_id}/purchase")

    async def get_my_products(self) -> Result[Any]:
        """List the agent's published products."""
        return await self.request("GET", "/products/my/products")

    async def get_seller_stats(self) -> Result[Any]:
        """Get aggregate seller statistics."""
        return await self.request("GET", "/products/my/stats")

    async def get_pricing(self) -> Result[Any]:
        """Get the per-endpoint credit pricing table."""
        return await self.request("GET", "/pricing")
