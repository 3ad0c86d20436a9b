"""
Music API Playlist Cache
병합된 플레이리스트 결과를 프로세스 메모리에 보관 (재시작하면 사라짐)
"""

import hashlib
import logging
from typing import Any, Dict, Optional

from cachetools import TTLCache

from ..schemas.playlist import PlaylistResponse
from .outcomes import AggregateResult

logger = logging.getLogger(__name__)


def _credential_suffix(cookies_json: Optional[str], music_u: Optional[str]) -> str:
    """인증 정보가 있으면 키를 호출자별로 분리 (원문은 키에 남기지 않음)"""
    if not cookies_json and not music_u:
        return ""
    digest = hashlib.sha256(f"{cookies_json or ''}\x00{music_u or ''}".encode("utf-8")).hexdigest()
    return f":u{digest[:32]}"


def make_page_cache_key(
    playlist_id: int,
    page: int,
    page_size: int,
    cookies_json: Optional[str] = None,
    music_u: Optional[str] = None
) -> str:
    """
    단일 페이지 캐시 키 생성

    형식: page:{playlist_id}:{page}:{page_size}[:u{sha256}]
    """
    return f"page:{playlist_id}:{page}:{page_size}{_credential_suffix(cookies_json, music_u)}"


def make_aggregate_cache_key(
    mode: str,
    playlist_id: int,
    count: int,
    page_size: int,
    cookies_json: Optional[str] = None,
    music_u: Optional[str] = None
) -> str:
    """
    병합 결과 캐시 키 생성

    형식: agg:{mode}:{playlist_id}:n:{count}:ps:{page_size}[:u{sha256}]
    """
    return f"agg:{mode}:{playlist_id}:n:{count}:ps:{page_size}{_credential_suffix(cookies_json, music_u)}"


class PlaylistCache:
    """
    인메모리 TTL 캐시

    - 더미(placeholder) 데이터는 저장하지 않음
    - 동일 요청이 동시에 들어와도 합치지 않음 (각자 요청)
    """

    def __init__(self, maxsize: int = 128, ttl_sec: int = 300):
        self.maxsize = maxsize
        self.ttl_sec = ttl_sec
        self._store: Optional[TTLCache] = None
        if maxsize > 0 and ttl_sec > 0:
            self._store = TTLCache(maxsize=maxsize, ttl=ttl_sec)

    @property
    def enabled(self) -> bool:
        return self._store is not None

    def get_page(self, key: str) -> Optional[PlaylistResponse]:
        if self._store is None:
            return None
        cached = self._store.get(key)
        if cached is None:
            return None
        logger.debug(f"Cache hit: {key}")
        return cached.model_copy(deep=True)

    def set_page(self, key: str, response: PlaylistResponse) -> None:
        if self._store is None:
            return
        self._store[key] = response.model_copy(deep=True)

    def get_aggregate(self, key: str) -> Optional[AggregateResult]:
        if self._store is None:
            return None
        cached = self._store.get(key)
        if cached is None:
            return None
        logger.debug(f"Cache hit: {key}")
        return AggregateResult(songs=list(cached.songs), total_pages=cached.total_pages)

    def set_aggregate(self, key: str, result: AggregateResult) -> None:
        if self._store is None or result.placeholder:
            return
        self._store[key] = AggregateResult(songs=list(result.songs), total_pages=result.total_pages)

    def clear(self) -> None:
        if self._store is not None:
            self._store.clear()

    def stats(self) -> Dict[str, Any]:
        """헬스 체크용 상태"""
        return {
            "enabled": self.enabled,
            "size": len(self._store) if self._store is not None else 0,
            "maxsize": self.maxsize,
            "ttl_sec": self.ttl_sec,
        }
