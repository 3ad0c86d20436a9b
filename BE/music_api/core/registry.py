"""
Music API Endpoint Registry
upstream 후보 엔드포인트 및 프록시 릴레이 목록
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Tuple
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """upstream 후보 base URL 하나"""
    base_url: str
    scheme: Literal["http", "https"]

    @classmethod
    def parse(cls, url: str) -> "Endpoint":
        base_url = url.strip().rstrip("/")
        scheme = urlsplit(base_url).scheme.lower()
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported endpoint scheme: {url!r}")
        return cls(base_url=base_url, scheme=scheme)

    @property
    def is_plain_http(self) -> bool:
        return self.scheme == "http"

    def __str__(self) -> str:
        return self.base_url


class EndpointRegistry:
    """
    정적 엔드포인트 레지스트리

    프로세스 동안 고정, 등록 순서가 곧 우선순위 (헬스 기반 재정렬 없음)
    """

    def __init__(self, endpoints: Iterable[str], proxy_relays: Iterable[str] = ()):
        self._endpoints: Tuple[Endpoint, ...] = tuple(Endpoint.parse(url) for url in endpoints)
        self._proxy_relays: Tuple[str, ...] = tuple(relay.strip() for relay in proxy_relays if relay.strip())

        if not self._endpoints:
            raise ValueError("At least one upstream endpoint must be configured")

        logger.info(
            f"Endpoint registry: endpoints={[str(e) for e in self._endpoints]}, "
            f"proxy_relays={len(self._proxy_relays)}"
        )

    @classmethod
    def from_settings(cls, settings) -> "EndpointRegistry":
        return cls(settings.endpoint_urls(), settings.PROXY_RELAYS)

    def candidates(self) -> Tuple[Endpoint, ...]:
        """우선순위 순 엔드포인트"""
        return self._endpoints

    def proxy_relays(self) -> Tuple[str, ...]:
        """우선순위 순 프록시 릴레이 접두사"""
        return self._proxy_relays

    def __len__(self) -> int:
        return len(self._endpoints)
