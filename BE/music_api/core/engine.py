"""
Music API Playlist Engine
호출자용 진입점: 입력 검증 + 캐시 + 에스컬레이션 + 더미 데이터 대체
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urlsplit

import httpx
import numpy as np

from ..schemas.playlist import PlaylistResponse
from ..schemas.songs import SongMetadata
from ..utils.timing import Timer
from .aggregator import PageAggregator, Sleep, log_resolution
from .cache import PlaylistCache, make_aggregate_cache_key, make_page_cache_key
from .config import Settings
from .escalation import EscalationPolicy
from .fallback import mock_playlist
from .outcomes import AggregateResult, ApplicationError, PageRequest, Success, describe
from .registry import Endpoint, EndpointRegistry
from .transport import TransportAttempt, UrlCheck

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """잘못된 호출 입력 (엔진 밖으로 나가는 유일한 오류)"""


@dataclass
class EndpointProbe:
    """엔드포인트 진단 결과"""
    endpoint: str
    scheme: str
    ok: bool
    outcome: str
    cause: str
    code: Optional[int]
    elapsed_ms: float
    via_proxy: Optional[str] = None


def _require_positive(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidInputError(f"{name} must be >= 1, got {value}")
    return value


def _require_header_value(name: str, value: Optional[str]) -> Optional[str]:
    """HTTP 헤더로 그대로 보낼 수 있는 값인지 확인 (출력 가능한 ASCII, 개행 없음)"""
    if value is None:
        return None
    if not (value.isascii() and value.isprintable()):
        raise InvalidInputError(f"{name} must be printable ASCII")
    return value


def _require_http_url(url: Any) -> str:
    if not isinstance(url, str):
        raise InvalidInputError(f"url must be a string, got {url!r}")
    parts = urlsplit(url.strip())
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise InvalidInputError(f"url must be an absolute http(s) URL, got {url!r}")
    return url.strip()


class PlaylistEngine:
    """
    플레이리스트 조회 엔진

    upstream 도달 실패로는 절대 예외를 던지지 않음
    최악의 경우 더미 곡 목록을 돌려줌, 예외는 InvalidInputError 뿐
    """

    def __init__(
        self,
        settings: Settings,
        transport: TransportAttempt,
        registry: Optional[EndpointRegistry] = None,
        cache: Optional[PlaylistCache] = None,
        rng: Optional[np.random.Generator] = None,
        sleep: Optional[Sleep] = None
    ):
        """
        Args:
            settings: 서비스 설정
            transport: 요청 1회 실행기
            registry: 엔드포인트 레지스트리 (없으면 settings 로 생성)
            cache: 인메모리 캐시 (없으면 settings 로 생성)
            rng: 랜덤 페이지 선택용 numpy Generator
            sleep: backoff/페이지 지연 함수 (테스트에서 교체)
        """
        self.settings = settings
        self.transport = transport
        self.registry = registry or EndpointRegistry.from_settings(settings)
        self.cache = cache if cache is not None else PlaylistCache(settings.CACHE_MAXSIZE, settings.CACHE_TTL_SEC)

        self.policy = EscalationPolicy(
            registry=self.registry,
            transport=transport,
            max_attempts=settings.MAX_ATTEMPTS_PER_ENDPOINT,
            base_delay=settings.RETRY_BASE_DELAY_SEC,
            secure_origin=settings.SECURE_ORIGIN,
            sleep=sleep
        )
        self.aggregator = PageAggregator(
            policy=self.policy,
            page_delay=settings.PAGE_DELAY_SEC,
            sample_page_size=settings.RANDOM_SAMPLE_PAGE_SIZE,
            page_cap=settings.RANDOM_PAGE_CAP,
            fanout=settings.SAMPLE_FANOUT,
            rng=rng,
            sleep=sleep
        )

        logger.info(
            f"Engine 초기화: endpoints={len(self.registry)}, "
            f"max_attempts={settings.MAX_ATTEMPTS_PER_ENDPOINT}, "
            f"timeout={settings.REQUEST_TIMEOUT_SEC}s, secure_origin={settings.SECURE_ORIGIN}, "
            f"cache={'on' if self.cache.enabled else 'off'}"
        )

    @classmethod
    def from_client(
        cls,
        settings: Settings,
        client: httpx.AsyncClient,
        public_client: Optional[httpx.AsyncClient] = None,
        **kwargs
    ) -> "PlaylistEngine":
        transport = TransportAttempt(client, timeout=settings.REQUEST_TIMEOUT_SEC, public_client=public_client)
        return cls(settings, transport, **kwargs)

    def _build_request(
        self,
        playlist_id: Optional[int],
        page: int,
        page_size: Optional[int],
        cookies_json: Optional[str],
        music_u: Optional[str]
    ) -> PageRequest:
        if playlist_id is None:
            playlist_id = self.settings.DEFAULT_PLAYLIST_ID
        if page_size is None:
            page_size = self.settings.PAGE_SIZE

        return PageRequest(
            playlist_id=_require_positive("playlist_id", playlist_id),
            page=_require_positive("page", page),
            page_size=_require_positive("page_size", page_size),
            cookies_json=cookies_json or None,
            music_u=_require_header_value("music_u", music_u or self.settings.MUSIC_U or None),
        )

    async def get_playlist(
        self,
        playlist_id: Optional[int] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        cookies_json: Optional[str] = None,
        music_u: Optional[str] = None,
        refresh: bool = False
    ) -> PlaylistResponse:
        """
        플레이리스트 한 페이지 조회

        - 모든 엔드포인트/프록시 실패 -> mock_playlist (code 200)
        """
        request = self._build_request(playlist_id, page, page_size, cookies_json, music_u)
        cache_key = make_page_cache_key(
            request.playlist_id, request.page, request.clamped_page_size, request.cookies_json, request.music_u
        )

        if not refresh:
            cached = self.cache.get_page(cache_key)
            if cached is not None:
                return cached

        resolution = await self.policy.resolve(request)
        log_resolution(resolution, request.playlist_id)

        if resolution.response is not None:
            self.cache.set_page(cache_key, resolution.response)
            return resolution.response

        logger.warning(
            f"All endpoints failed for playlist={request.playlist_id} page={request.page}, "
            f"returning placeholder playlist"
        )
        return mock_playlist(request.page, request.page_size, request.playlist_id)

    async def get_multiple_pages(
        self,
        playlist_id: Optional[int] = None,
        pages: Optional[int] = None,
        page_size: Optional[int] = None,
        cookies_json: Optional[str] = None,
        music_u: Optional[str] = None,
        refresh: bool = False
    ) -> AggregateResult:
        """앞에서부터 pages 개 페이지를 순차 조회해서 병합 (기본 PRELOAD_PAGES)"""
        if pages is None:
            pages = self.settings.PRELOAD_PAGES
        pages = _require_positive("pages", pages)
        request = self._build_request(playlist_id, 1, page_size, cookies_json, music_u)

        cache_key = make_aggregate_cache_key(
            "seq", request.playlist_id, pages, request.clamped_page_size, request.cookies_json, request.music_u
        )
        if not refresh:
            cached = self.cache.get_aggregate(cache_key)
            if cached is not None:
                return cached

        result = await self.aggregator.sequential(request, pages)
        self.cache.set_aggregate(cache_key, result)
        return result

    async def get_random_sample(
        self,
        playlist_id: Optional[int] = None,
        samples: Optional[int] = None,
        cookies_json: Optional[str] = None,
        music_u: Optional[str] = None,
        refresh: bool = False
    ) -> AggregateResult:
        """1페이지 + 임의의 samples 개 페이지 병합 (기본 RANDOM_SAMPLE_PAGES)"""
        if samples is None:
            samples = self.settings.RANDOM_SAMPLE_PAGES
        samples = _require_positive("samples", samples)
        request = self._build_request(
            playlist_id, 1, self.settings.RANDOM_SAMPLE_PAGE_SIZE, cookies_json, music_u
        )

        cache_key = make_aggregate_cache_key(
            "rnd", request.playlist_id, samples, request.clamped_page_size, request.cookies_json, request.music_u
        )
        if not refresh:
            cached = self.cache.get_aggregate(cache_key)
            if cached is not None:
                return cached

        result = await self.aggregator.random_sample(request, samples)
        self.cache.set_aggregate(cache_key, result)
        return result

    async def _probe(self, endpoint: Endpoint, request: PageRequest, relay: Optional[str] = None) -> EndpointProbe:
        label = f"probe {endpoint}" if relay is None else f"probe {endpoint} via {relay}"
        with Timer(label) as timer:
            if relay is None:
                outcome = await self.transport.attempt(endpoint, request)
            else:
                outcome = await self.transport.attempt_proxied(relay, endpoint, request)

        code: Optional[int] = None
        if isinstance(outcome, Success):
            code = outcome.response.code
        elif isinstance(outcome, ApplicationError):
            code = outcome.code
        return EndpointProbe(
            endpoint=endpoint.base_url,
            scheme=endpoint.scheme,
            ok=isinstance(outcome, Success),
            outcome=outcome.kind,
            cause="" if isinstance(outcome, Success) else describe(outcome),
            code=code,
            elapsed_ms=round(timer.elapsed * 1000, 1),
            via_proxy=relay,
        )

    async def probe_endpoints(self, playlist_id: Optional[int] = None) -> List[EndpointProbe]:
        """
        엔드포인트별 연결 진단 (재시도/프록시 없이 직접 1회, page_size=1)
        """
        request = self._build_request(playlist_id, 1, 1, None, None)
        return list(await asyncio.gather(*(self._probe(e, request) for e in self.registry.candidates())))

    async def probe_relays(self, playlist_id: Optional[int] = None) -> List[EndpointProbe]:
        """
        프록시 릴레이별 진단

        우회 대상이 되는 첫 http 엔드포인트 (없으면 첫 엔드포인트) 를 릴레이마다 1회 요청
        """
        request = self._build_request(playlist_id, 1, 1, None, None)
        candidates = self.registry.candidates()
        target = next((e for e in candidates if e.is_plain_http), candidates[0])
        relays = self.registry.proxy_relays()
        return list(await asyncio.gather(*(self._probe(target, request, relay) for relay in relays)))

    async def check_external(self) -> List[UrlCheck]:
        """외부 공개 서비스 접근 가능 여부 (GET 1회씩)"""
        urls = self.settings.EXTERNAL_TEST_URLS
        return list(await asyncio.gather(*(self.transport.check_url(url, "GET") for url in urls)))

    async def validate_song_url(self, url: str) -> bool:
        """곡 URL 이 재생 가능한 응답을 주는지 HEAD 로 확인"""
        check = await self.transport.check_url(_require_http_url(url))
        if not check.ok:
            logger.info(f"Song URL unavailable: {url} ({check.error})")
        return check.ok

    async def get_song_metadata(self, url: str) -> Optional[SongMetadata]:
        """
        곡 URL 의 HEAD 응답 헤더로 메타데이터 조회

        - 응답 실패 -> None
        - content-length 가 없으면 size=0
        """
        check = await self.transport.check_url(_require_http_url(url))
        if not check.ok:
            return None
        return SongMetadata(url=check.url, size=check.content_length or 0, content_type=check.content_type)
