"""
Music API Health Check API
헬스 체크 라우터
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel
from typing import List

router = APIRouter(tags=["health"])


class CacheStatus(BaseModel):
    """인메모리 캐시 상태"""
    enabled: bool
    size: int
    maxsize: int
    ttl_sec: int


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    service: str
    version: str
    endpoints: List[str]
    proxy_relays: int
    secure_origin: bool
    max_attempts_per_endpoint: int
    request_timeout_sec: float
    cache: CacheStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    서버 상태 확인

    - 설정된 엔드포인트 / 프록시 릴레이
    - 재시도 설정
    - 캐시 상태

    upstream 연결 여부는 /network-test?test=music 에서 확인
    """
    state = request.app.state
    config = state.config
    engine = state.engine

    return HealthResponse(
        status="ok",
        service=config.SERVICE_NAME,
        version=config.SERVICE_VERSION,
        endpoints=[e.base_url for e in engine.registry.candidates()],
        proxy_relays=len(engine.registry.proxy_relays()),
        secure_origin=config.SECURE_ORIGIN,
        max_attempts_per_endpoint=config.MAX_ATTEMPTS_PER_ENDPOINT,
        request_timeout_sec=config.REQUEST_TIMEOUT_SEC,
        cache=CacheStatus(**engine.cache.stats())
    )
