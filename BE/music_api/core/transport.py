"""
Music API Transport Attempt
엔드포인트 1개에 대한 요청 1회 (타임아웃 포함) + 응답 봉투 검증
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..schemas.playlist import SUCCESS_CODE, PlaylistResponse
from .outcomes import (
    CAUSE_CONNECT,
    CAUSE_HTTP_STATUS,
    CAUSE_INVALID_PAYLOAD,
    CAUSE_NETWORK,
    CAUSE_TIMEOUT,
    ApplicationError,
    FetchOutcome,
    PageRequest,
    Success,
    TransportError,
)
from ..utils.timing import Timer
from .registry import Endpoint

DEFAULT_TIMEOUT_SEC = 8.0

# JS encodeURIComponent 와 같은 비예약 문자 집합
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass
class UrlCheck:
    """URL 하나에 대한 단순 도달 확인 결과 (곡 URL 검증, 외부 서비스 진단)"""
    url: str
    ok: bool
    status: Optional[int] = None
    content_length: Optional[int] = None
    content_type: Optional[str] = None
    error: str = ""
    elapsed_ms: float = 0.0


def build_playlist_url(endpoint: Endpoint, request: PageRequest) -> str:
    """{endpoint}/playlist?playlist_id=&page=&page_size=[&cookies_json=]"""
    params = {
        "playlist_id": str(request.playlist_id),
        "page": str(request.page),
        "page_size": str(request.clamped_page_size),
    }
    if request.cookies_json:
        params["cookies_json"] = request.cookies_json
    return str(httpx.URL(f"{endpoint.base_url}/playlist", params=params))


def build_proxy_url(relay: str, target_url: str) -> str:
    """{proxyBase}{encodeURIComponent(targetUrl)}"""
    return f"{relay}{quote(target_url, safe=_URI_COMPONENT_SAFE)}"


def parse_envelope(response: httpx.Response) -> FetchOutcome:
    """
    HTTP 응답을 FetchOutcome 으로 변환

    - 2xx 아님 / JSON 아님 / 스키마 불일치 -> TransportError
    - code != 200 -> ApplicationError
    """
    if not response.is_success:
        return TransportError(
            CAUSE_HTTP_STATUS,
            f"HTTP {response.status_code}: {response.reason_phrase}"
        )

    try:
        data = response.json()
    except ValueError as e:
        return TransportError(CAUSE_INVALID_PAYLOAD, f"response is not JSON: {e}")

    if not isinstance(data, dict):
        return TransportError(CAUSE_INVALID_PAYLOAD, "response is not a JSON object")

    if "code" in data and data["code"] != SUCCESS_CODE:
        try:
            return ApplicationError(int(data["code"]))
        except (TypeError, ValueError):
            return TransportError(CAUSE_INVALID_PAYLOAD, f"invalid code: {data['code']!r}")

    try:
        payload = PlaylistResponse.model_validate(data)
    except ValidationError as e:
        return TransportError(CAUSE_INVALID_PAYLOAD, f"{e.error_count()} validation error(s)")

    return Success(payload)


class TransportAttempt:
    """
    단일 요청 실행기

    공유 상태를 바꾸지 않음, 결과는 항상 FetchOutcome 으로 반환 (예외 없음)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = DEFAULT_TIMEOUT_SEC,
        public_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Args:
            client: upstream 엔드포인트용 공유 httpx.AsyncClient (앱 lifespan 에서 생성/종료)
            timeout: 요청 1회 기본 타임아웃 (초)
            public_client: 프록시 릴레이/외부 URL 용 클라이언트 (인증서 검증, 없으면 client)
        """
        self.client = client
        self.timeout = timeout
        self.public_client = public_client if public_client is not None else client

    async def attempt(
        self,
        endpoint: Endpoint,
        request: PageRequest,
        timeout: Optional[float] = None
    ) -> FetchOutcome:
        """엔드포인트에 직접 요청"""
        headers = {"Accept": "application/json"}
        if request.music_u:
            headers["music_u"] = request.music_u
        return await self._fetch(self.client, build_playlist_url(endpoint, request), headers, timeout)

    async def attempt_proxied(
        self,
        relay: str,
        endpoint: Endpoint,
        request: PageRequest,
        timeout: Optional[float] = None
    ) -> FetchOutcome:
        """공개 프록시 릴레이를 통해 요청 (music_u 토큰은 넘기지 않음)"""
        target_url = build_playlist_url(endpoint, request)
        headers = {"Accept": "application/json"}
        return await self._fetch(self.public_client, build_proxy_url(relay, target_url), headers, timeout)

    async def check_url(self, url: str, method: str = "HEAD", timeout: Optional[float] = None) -> UrlCheck:
        """
        공개 URL 도달 확인 (본문은 보지 않음)

        - 2xx 면 ok, content-length / content-type 헤더를 같이 돌려줌
        - 네트워크 오류도 예외 대신 ok=False
        """
        seconds = timeout if timeout is not None else self.timeout
        with Timer() as timer:
            try:
                response = await asyncio.wait_for(
                    self.public_client.request(method, url, timeout=httpx.Timeout(seconds)),
                    timeout=seconds
                )
            except (httpx.TimeoutException, asyncio.TimeoutError):
                response = None
                error = f"no response within {seconds:g}s"
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                response = None
                error = str(e) or type(e).__name__
        elapsed_ms = round(timer.elapsed * 1000, 1)

        if response is None:
            return UrlCheck(url=url, ok=False, error=error, elapsed_ms=elapsed_ms)

        length = response.headers.get("content-length")
        return UrlCheck(
            url=url,
            ok=response.is_success,
            status=response.status_code,
            content_length=int(length) if length and length.isdigit() else None,
            content_type=response.headers.get("content-type"),
            error="" if response.is_success else f"HTTP {response.status_code}",
            elapsed_ms=elapsed_ms,
        )

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Dict[str, str],
        timeout: Optional[float]
    ) -> FetchOutcome:
        seconds = timeout if timeout is not None else self.timeout
        try:
            # httpx 타임아웃은 단계별이라 전체 시간은 wait_for 로 한 번 더 묶음
            response = await asyncio.wait_for(
                client.get(url, headers=headers, timeout=httpx.Timeout(seconds)),
                timeout=seconds
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            return TransportError(CAUSE_TIMEOUT, f"no response within {seconds:g}s")
        except httpx.ConnectError as e:
            return TransportError(CAUSE_CONNECT, str(e) or type(e).__name__)
        except httpx.HTTPError as e:
            return TransportError(CAUSE_NETWORK, str(e) or type(e).__name__)

        return parse_envelope(response)
