"""
Music API Escalation Policy
실패 원인별 대응: 같은 엔드포인트 재시도 / 프록시 우회 / 다음 엔드포인트로 failover
"""

import asyncio
from typing import Awaitable, Callable, List, Optional, Tuple

from ..utils.timing import Timer
from .outcomes import (
    ApplicationError,
    AttemptRecord,
    Exhausted,
    FetchOutcome,
    PageRequest,
    ProtocolBlocked,
    Resolution,
    Success,
    TransportError,
    describe,
)
from .registry import Endpoint, EndpointRegistry
from .transport import TransportAttempt

Sleep = Callable[[float], Awaitable[None]]

# 런타임마다 메시지가 달라서 보조 신호로만 사용
BLOCKED_SIGNATURES: Tuple[str, ...] = ("mixed content", "blocked", "cors")


def classify_failure(outcome: FetchOutcome, endpoint: Endpoint, secure_origin: bool) -> FetchOutcome:
    """
    TransportError 중 보안 정책 차단으로 보이는 것을 ProtocolBlocked 로 재분류

    1순위: HTTPS 오리진에서 http 엔드포인트 호출 (scheme 불일치)
           타임아웃/5xx 같은 일시적 원인이어도 차단으로 보고 재시도 없이 프록시 우회
    2순위: 에러 메시지에 mixed content / blocked / cors 포함
    """
    if not isinstance(outcome, TransportError):
        return outcome

    if secure_origin and endpoint.is_plain_http:
        return ProtocolBlocked(outcome.detail or "secure origin calling http endpoint")

    text = outcome.detail.lower()
    if any(signature in text for signature in BLOCKED_SIGNATURES):
        return ProtocolBlocked(outcome.detail)

    return outcome


class EscalationPolicy:
    """
    논리 페이지 하나를 얻기 위한 정책

    1. 엔드포인트당 최대 max_attempts 회 직접 요청, 시도 사이 attempt * base_delay 대기
    2. ProtocolBlocked (http 엔드포인트) -> 프록시 릴레이로 한 번 우회
    3. ApplicationError / 프록시 우회 후 -> 다음 엔드포인트
    4. 전부 실패 -> Exhausted (데이터를 만들어내지 않음)
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        transport: TransportAttempt,
        max_attempts: int = 2,
        base_delay: float = 1.0,
        secure_origin: bool = False,
        sleep: Optional[Sleep] = None
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.registry = registry
        self.transport = transport
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.secure_origin = secure_origin
        self._sleep = sleep or asyncio.sleep

    async def resolve(self, request: PageRequest) -> Resolution:
        """레지스트리 순서대로 엔드포인트를 시도"""
        attempts: List[AttemptRecord] = []
        for endpoint in self.registry.candidates():
            outcome = await self.resolve_endpoint(endpoint, request, attempts)
            if isinstance(outcome, Success):
                return Resolution(outcome, attempts)
        return Resolution(Exhausted(), attempts)

    async def resolve_endpoint(
        self,
        endpoint: Endpoint,
        request: PageRequest,
        attempts: List[AttemptRecord]
    ) -> FetchOutcome:
        """엔드포인트 하나에 대해 재시도 + 프록시 우회, 마지막 outcome 반환"""
        outcome: FetchOutcome = Exhausted()
        for attempt_index in range(1, self.max_attempts + 1):
            outcome = await self._direct(endpoint, request, attempts)

            if isinstance(outcome, (Success, ApplicationError)):
                return outcome

            if isinstance(outcome, ProtocolBlocked):
                if endpoint.is_plain_http:
                    proxied = await self._escalate(endpoint, request, attempts)
                    if proxied is not None:
                        return proxied
                # 정책 차단은 재시도해도 같은 결과
                return outcome

            if attempt_index < self.max_attempts:
                await self._sleep(attempt_index * self.base_delay)

        return outcome

    async def _direct(
        self,
        endpoint: Endpoint,
        request: PageRequest,
        attempts: List[AttemptRecord]
    ) -> FetchOutcome:
        with Timer() as timer:
            raw = await self.transport.attempt(endpoint, request)
        outcome = classify_failure(raw, endpoint, self.secure_origin)
        attempts.append(_record(endpoint, request, None, outcome, timer.elapsed))
        return outcome

    async def _escalate(
        self,
        endpoint: Endpoint,
        request: PageRequest,
        attempts: List[AttemptRecord]
    ) -> Optional[Success]:
        """릴레이를 순서대로 시도, 첫 성공 반환 (실패는 기록만 하고 삼킴)"""
        for relay in self.registry.proxy_relays():
            with Timer() as timer:
                outcome = await self.transport.attempt_proxied(relay, endpoint, request)
            attempts.append(_record(endpoint, request, relay, outcome, timer.elapsed))
            if isinstance(outcome, Success):
                return outcome
        return None


def _record(
    endpoint: Endpoint,
    request: PageRequest,
    relay: Optional[str],
    outcome: FetchOutcome,
    elapsed: float
) -> AttemptRecord:
    return AttemptRecord(
        endpoint=endpoint.base_url,
        page=request.page,
        via_proxy=relay,
        kind=outcome.kind,
        cause="" if isinstance(outcome, Success) else describe(outcome),
        elapsed=elapsed,
    )
