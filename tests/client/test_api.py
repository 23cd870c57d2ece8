"""Tests for the marketplace HTTP client."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest

from mcpsovereign.client.api import Agent, SovereignClient
from mcpsovereign.core.config import ClientConfig
from mcpsovereign.core.result import Err, ErrorKind, Ok
from tests.helpers import API_URL, agent_payload, envelope, error_envelope


def make_config(token: str | None = "token123") -> ClientConfig:
    """Create a ClientConfig for testing."""
    return ClientConfig(api_url=API_URL, token=token)


def call(
    fn: Callable[[SovereignClient], Awaitable[Any]],
    config: ClientConfig | None = None,
) -> Any:
    """Run fn against a fresh client and close it afterwards."""

    async def runner() -> Any:
        async with SovereignClient(config or make_config()) as client:
            return await fn(client)

    return asyncio.run(runner())


class TestAgent:
    """Tests for Agent dataclass."""

    def test_from_dict(self) -> None:
        """Should create Agent from dictionary."""
        agent = Agent.from_dict(agent_payload())

        assert agent.id == "agent-1"
        assert agent.wallet_address == "bc1qwallet"
        assert agent.display_name == "Ada"
        assert agent.level == 3
        assert agent.credit_balance == "50000"

    def test_from_dict_minimal(self) -> None:
        """Missing optional fields get defaults."""
        agent = Agent.from_dict({"id": "a"})
        assert agent.display_name is None
        assert agent.level == 0
        assert agent.xp == "0"


class TestEnvelope:
    """Tests for response handling shared by every endpoint."""

    def test_success_unwraps_data(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return the envelope's data."""
        httpx_mock.add_response(
            url=f"{API_URL}/credits/balance",
            json=envelope({"balance": "1200"}),
        )

        result = call(lambda c: c.get_balance())

        assert isinstance(result, Ok)
        assert result.value == {"balance": "1200"}

    def test_sends_bearer_token(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send the configured token."""
        httpx_mock.add_response(url=f"{API_URL}/auth/me", json=envelope(agent_payload()))

        call(lambda c: c.get_agent_info())

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == "Bearer token123"

    def test_no_token_no_header(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(url=f"{API_URL}/pricing", json=envelope({}))

        call(lambda c: c.get_pricing(), make_config(token=None))

        assert "Authorization" not in httpx_mock.get_requests()[0].headers

    def test_billing_headers(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should parse credits headers into billing info."""
        httpx_mock.add_response(
            url=f"{API_URL}/products/categories",
            json=envelope([]),
            headers={"X-Credits-Charged": "5", "X-Credits-Remaining": "995"},
        )

        result = call(lambda c: c.get_categories())

        assert result.billing.credits_charged == 5
        assert result.billing.credits_remaining == 995

    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (401, ErrorKind.AUTHENTICATION),
            (402, ErrorKind.INSUFFICIENT_CREDITS),
            (404, ErrorKind.NOT_FOUND),
            (400, ErrorKind.REMOTE),
            (500, ErrorKind.REMOTE),
        ],
    )
    def test_http_errors(self, httpx_mock, status: int, kind: ErrorKind) -> None:  # type: ignore[no-untyped-def]
        """Should map HTTP status codes to error kinds."""
        httpx_mock.add_response(
            url=f"{API_URL}/products/p1",
            status_code=status,
            json=error_envelope("SOME_CODE", "Something failed", hint="retry later"),
        )

        result = call(lambda c: c.get_product_details("p1"))

        assert isinstance(result, Err)
        assert result.kind is kind
        assert result.code == "SOME_CODE"
        assert result.message == "Something failed"
        assert result.status_code == status
        assert result.details == {"hint": "retry later"}

    def test_success_false_with_200(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """A 200 with success=false is still an error."""
        httpx_mock.add_response(
            url=f"{API_URL}/sync/status",
            json=error_envelope("SYNC_LOCKED", "Sync in progress"),
        )

        result = call(lambda c: c.get_sync_status())

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.REMOTE
        assert result.code == "SYNC_LOCKED"

    def test_error_without_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            url=f"{API_URL}/sync/status", status_code=503, json={"success": False}
        )

        result = call(lambda c: c.get_sync_status())

        assert isinstance(result, Err)
        assert result.message == "Request failed (HTTP 503)"

    def test_non_json_body(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should report unparseable bodies as invalid responses."""
        httpx_mock.add_response(
            url=f"{API_URL}/sync/status", status_code=502, text="<html>Bad gateway</html>"
        )

        result = call(lambda c: c.get_sync_status())

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.INVALID_RESPONSE
        assert result.status_code == 502

    def test_network_error(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return a network error instead of raising."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        result = call(lambda c: c.get_balance())

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.NETWORK
        assert result.code == "NETWORK_ERROR"
        assert "Connection refused" in result.message


class TestSovereignClient:
    """Tests for endpoint wrappers."""

    def test_health_check_success(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should query /health next to the versioned API prefix."""
        httpx_mock.add_response(url="http://test/api/health", json={"status": "ok"})

        assert call(lambda c: c.health_check()) is True

    def test_health_check_failure(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(url="http://test/api/health", status_code=500)

        assert call(lambda c: c.health_check()) is False

    def test_health_check_unreachable(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_exception(httpx.ConnectError("down"))

        assert call(lambda c: c.health_check()) is False

    def test_get_agent_info(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(url=f"{API_URL}/auth/me", json=envelope(agent_payload()))

        result = call(lambda c: c.get_agent_info())

        assert isinstance(result, Ok)
        assert isinstance(result.value, Agent)
        assert result.value.id == "agent-1"

    def test_get_agent_info_malformed(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(url=f"{API_URL}/auth/me", json=envelope({"name": "x"}))

        result = call(lambda c: c.get_agent_info())

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.INVALID_RESPONSE

    def test_push_manifest(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should wrap the manifest in the request body."""
        httpx_mock.add_response(
            method="POST", url=f"{API_URL}/sync/push", json=envelope({"sync_id": "s1"})
        )

        result = call(lambda c: c.push_manifest({"agent_id": "agent-1", "products": []}))

        assert result.value == {"sync_id": "s1"}
        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body == {"manifest": {"agent_id": "agent-1", "products": []}}

    def test_pull(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(method="POST", url=f"{API_URL}/sync/pull", json=envelope({}))

        call(lambda c: c.pull("2026-01-01T00:00:00.000Z"))

        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body == {"since": "2026-01-01T00:00:00.000Z"}

    def test_browse_products_params(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should send only the filters that were given."""
        httpx_mock.add_response(
            url=f"{API_URL}/products?category=datasets&page=2&sort=newest",
            json=envelope({"products": []}),
        )

        result = call(
            lambda c: c.browse_products(category="datasets", page=2, sort="newest")
        )

        assert isinstance(result, Ok)

    def test_purchase_product(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/products/p1/purchase",
            status_code=402,
            json=error_envelope("INSUFFICIENT_CREDITS", "Not enough credits", required=500),
        )

        result = call(lambda c: c.purchase_product("p1"))

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.INSUFFICIENT_CREDITS
        assert result.details["required"] == 500

    def test_get_my_products(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should list the agent's published products."""
        httpx_mock.add_response(
            url=f"{API_URL}/products/my/products",
            json=envelope([{"id": "r1", "name": "Prompt Pack Deluxe"}]),
        )

        result = call(lambda c: c.get_my_products())

        assert isinstance(result, Ok)
        assert result.value == [{"id": "r1", "name": "Prompt Pack Deluxe"}]

    def test_get_my_products_unauthenticated(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            url=f"{API_URL}/products/my/products",
            status_code=401,
            json=error_envelope("UNAUTHORIZED", "Missing token"),
        )

        result = call(lambda c: c.get_my_products(), make_config(token=None))

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.AUTHENTICATION

    def test_get_seller_stats(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return aggregate seller statistics."""
        httpx_mock.add_response(
            url=f"{API_URL}/products/my/stats",
            json=envelope({"total_sales": 4, "total_revenue": "2000"}),
            headers={"X-Credits-Charged": "1"},
        )

        result = call(lambda c: c.get_seller_stats())

        assert isinstance(result, Ok)
        assert result.value["total_sales"] == 4
        assert result.billing.credits_charged == 1


class TestAuthenticate:
    """Tests for the wallet challenge flow."""

    def test_success(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should sign the challenge message and adopt the token."""
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/auth/challenge",
            json=envelope({"challenge": "nonce-1", "message": "Sign in: nonce-1"}),
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/auth/verify",
            json=envelope({"token": "new-token", "agent": agent_payload(), "is_new_agent": True}),
        )
        httpx_mock.add_response(url=f"{API_URL}/auth/me", json=envelope(agent_payload()))
        signed: list[str] = []

        async def sign(message: str) -> str:
            signed.append(message)
            return "sig-abc"

        async def flow(client: SovereignClient) -> Any:
            result = await client.authenticate("bc1qwallet", sign)
            await client.get_agent_info()
            return result, client.token

        result, token = call(flow, make_config(token=None))

        assert isinstance(result, Ok)
        assert result.value["token"] == "new-token"
        assert result.value["agent"].id == "agent-1"
        assert result.value["is_new_agent"] is True
        assert token == "new-token"
        assert signed == ["Sign in: nonce-1"]

        challenge, verify, me = httpx_mock.get_requests()
        assert json.loads(challenge.content) == {"wallet_address": "bc1qwallet"}
        assert json.loads(verify.content) == {
            "wallet_address": "bc1qwallet",
            "challenge": "nonce-1",
            "signature": "sig-abc",
        }
        assert me.headers["Authorization"] == "Bearer new-token"

    def test_rejected_signature(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should return the verify error and keep no token."""
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/auth/challenge",
            json=envelope({"challenge": "nonce-1"}),
        )
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}/auth/verify",
            status_code=401,
            json=error_envelope("INVALID_SIGNATURE", "Signature does not match"),
        )

        async def sign(message: str) -> str:
            return "bad"

        async def flow(client: SovereignClient) -> Any:
            return await client.authenticate("bc1qwallet", sign), client.token

        result, token = call(flow, make_config(token=None))

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.AUTHENTICATION
        assert token is None

    def test_malformed_challenge(self, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        httpx_mock.add_response(
            method="POST", url=f"{API_URL}/auth/challenge", json=envelope({})
        )

        async def sign(message: str) -> str:
            raise AssertionError("should not be called")

        result = call(lambda c: c.authenticate("bc1qwallet", sign), make_config(token=None))

        assert isinstance(result, Err)
        assert result.kind is ErrorKind.INVALID_RESPONSE
