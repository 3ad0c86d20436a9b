"""Tests for retry, proxy escalation and endpoint failover."""

import httpx
import pytest

from music_api.core.escalation import EscalationPolicy, classify_failure
from music_api.core.outcomes import (
    ApplicationError,
    Exhausted,
    PageRequest,
    ProtocolBlocked,
    Success,
    TransportError,
)
from music_api.core.registry import Endpoint, EndpointRegistry
from music_api.core.transport import TransportAttempt

from fakes import (
    EP_BACKUP,
    EP_HTTP,
    EP_HTTPS,
    PLAYLIST_ID,
    RELAY,
    RecordingSleep,
    app_error,
    refuse,
    sequence,
    serve,
    timeout,
)


@pytest.fixture
def request_page_1() -> PageRequest:
    return PageRequest(PLAYLIST_ID, page=1, page_size=20)


@pytest.fixture
def policy_factory(http_client: httpx.AsyncClient, sleeper: RecordingSleep):
    def factory(endpoints, relays=(RELAY,), secure_origin=False, max_attempts=2) -> EscalationPolicy:
        return EscalationPolicy(
            registry=EndpointRegistry(endpoints, relays),
            transport=TransportAttempt(http_client, timeout=2.0),
            max_attempts=max_attempts,
            base_delay=1.0,
            secure_origin=secure_origin,
            sleep=sleeper,
        )
    return factory


class TestClassifyFailure:
    """Protocol-block classification."""

    def test_secure_origin_with_http_endpoint_is_blocked(self) -> None:
        outcome = classify_failure(TransportError("connect", "failed"), Endpoint.parse(EP_HTTP), True)

        assert isinstance(outcome, ProtocolBlocked)

    @pytest.mark.parametrize("failure", [
        TransportError("timeout", "no response within 8s"),
        TransportError("http_status", "HTTP 503: Service Unavailable"),
    ])
    def test_scheme_mismatch_overrides_transient_cause(self, failure: TransportError) -> None:
        assert isinstance(classify_failure(failure, Endpoint.parse(EP_HTTP), True), ProtocolBlocked)

    def test_secure_origin_with_https_endpoint_stays_transient(self) -> None:
        failure = TransportError("timeout", "no response within 8s")

        assert classify_failure(failure, Endpoint.parse(EP_HTTPS), True) == failure

    @pytest.mark.parametrize("message", [
        "Mixed Content: the page was loaded over HTTPS",
        "request blocked by client",
        "CORS policy: no Access-Control-Allow-Origin",
    ])
    def test_message_heuristic(self, message: str) -> None:
        outcome = classify_failure(TransportError("network", message), Endpoint.parse(EP_HTTP), False)

        assert isinstance(outcome, ProtocolBlocked)

    def test_plain_timeout_is_not_blocked(self) -> None:
        failure = TransportError("timeout", "no response within 8s")

        assert classify_failure(failure, Endpoint.parse(EP_HTTP), False) == failure

    def test_application_error_passes_through(self) -> None:
        assert classify_failure(ApplicationError(500), Endpoint.parse(EP_HTTP), True) == ApplicationError(500)


class TestRetryAndFailover:
    """Transient retry on one endpoint, then failover."""

    async def test_first_endpoint_success(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = serve()
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Success)
        assert len(resolution.attempts) == 1
        assert upstream.direct_calls(EP_HTTPS) == []

    async def test_timeouts_then_second_endpoint(self, policy_factory, upstream, sleeper, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = timeout()
        upstream.endpoints[EP_HTTPS] = serve(source=" (https)")
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert resolution.response is not None
        assert resolution.response.playlist_name == "Real Playlist (https)"
        assert len(resolution.attempts_against(EP_HTTP)) == 2
        assert len(upstream.direct_calls(EP_HTTP)) == 2
        assert upstream.proxy_calls() == []
        assert sleeper.delays == [1.0]

    async def test_transient_failure_recovers_on_retry(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = sequence(refuse(), serve())
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Success)
        assert len(upstream.direct_calls(EP_HTTP)) == 2
        assert upstream.direct_calls(EP_HTTPS) == []

    async def test_backoff_grows_with_attempt_index(self, policy_factory, upstream, sleeper, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = timeout()
        policy = policy_factory([EP_HTTP], max_attempts=3)

        await policy.resolve(request_page_1)

        assert sleeper.delays == [1.0, 2.0]

    async def test_application_error_is_not_retried(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = app_error(500)
        upstream.endpoints[EP_HTTPS] = serve()
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Success)
        assert len(upstream.direct_calls(EP_HTTP)) == 1
        assert resolution.attempts[0].kind == "application_error"

    async def test_all_endpoints_fail(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = timeout()
        upstream.endpoints[EP_HTTPS] = refuse()
        upstream.endpoints[EP_BACKUP] = app_error(503)
        policy = policy_factory([EP_HTTP, EP_HTTPS, EP_BACKUP])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Exhausted)
        assert resolution.response is None
        assert [c.endpoint for c in upstream.calls] == [EP_HTTP, EP_HTTP, EP_HTTPS, EP_HTTPS, EP_BACKUP]


class TestProxyEscalation:
    """Mixed-content blocks escalate through a proxy relay."""

    async def test_secure_origin_escalates_once_before_failover(
        self, policy_factory, upstream, request_page_1
    ) -> None:
        upstream.endpoints[EP_HTTP] = refuse("Failed to fetch")
        policy = policy_factory([EP_HTTP], secure_origin=True)

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Exhausted)
        assert len(upstream.proxy_calls()) == 1
        assert len(upstream.direct_calls(EP_HTTP)) == 1

    async def test_proxy_success_is_returned(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = refuse("Mixed Content: blocked")
        upstream.relay = serve(source=" (relay)")
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert resolution.response is not None
        assert resolution.response.playlist_name == "Real Playlist (relay)"
        assert resolution.attempts[-1].via_proxy == RELAY
        assert upstream.direct_calls(EP_HTTPS) == []

    async def test_proxy_request_precedes_failover(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = refuse("CORS request did not succeed")
        upstream.endpoints[EP_HTTPS] = serve()
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Success)
        assert [(c.endpoint, c.proxied) for c in upstream.calls] == [
            (EP_HTTP, False),
            (EP_HTTP, True),
            (EP_HTTPS, False),
        ]

    async def test_proxy_application_error_falls_through(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTP] = refuse("blocked:mixed-content")
        upstream.relay = app_error(403)
        upstream.endpoints[EP_HTTPS] = serve()
        policy = policy_factory([EP_HTTP, EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Success)
        assert resolution.attempts[1].kind == "application_error"

    async def test_https_endpoint_is_never_proxied(self, policy_factory, upstream, request_page_1) -> None:
        upstream.endpoints[EP_HTTPS] = refuse("blocked by CORS policy")
        policy = policy_factory([EP_HTTPS])

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Exhausted)
        assert upstream.proxy_calls() == []

    async def test_relays_tried_in_order_until_success(self, policy_factory, upstream, request_page_1) -> None:
        second_relay = "https://relay.test/alt?url="
        upstream.endpoints[EP_HTTP] = refuse("Mixed Content")
        upstream.relay = sequence(refuse("relay down"), serve())
        policy = policy_factory([EP_HTTP], relays=(RELAY, second_relay))

        resolution = await policy.resolve(request_page_1)

        assert isinstance(resolution.outcome, Success)
        assert [a.via_proxy for a in resolution.attempts] == [None, RELAY, second_relay]
