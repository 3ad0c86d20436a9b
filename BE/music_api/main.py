"""
Music API Backend Main Application
FastAPI 앱 및 startup/shutdown 이벤트
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings, Settings
from .core.engine import PlaylistEngine
from .api import routes_health, routes_playlist, routes_diagnostics, routes_songs
from .utils.logging import setup_logging

# 로깅 설정
setup_logging()
logger = logging.getLogger(__name__)


def _make_client(
    config: Settings,
    transport: Optional[httpx.AsyncBaseTransport],
    verify: bool
) -> httpx.AsyncClient:
    """공유 httpx 클라이언트 (타임아웃은 요청마다 지정)"""
    return httpx.AsyncClient(
        transport=transport,
        follow_redirects=True,
        limits=httpx.Limits(max_connections=max(config.SAMPLE_FANOUT * 2, 10)),
        verify=verify,
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    """
    FastAPI 앱 생성

    Args:
        settings: 설정 (없으면 환경변수에서 로드)
        transport: httpx 전송 계층 (테스트에서 MockTransport 주입)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 라이프사이클 관리"""
        # Startup
        config = settings or get_settings()
        app.state.config = config
        logging.getLogger().setLevel(config.LOG_LEVEL)

        logger.info("=" * 60)
        logger.info(f"{config.SERVICE_NAME} Starting...")
        logger.info("=" * 60)
        logger.info(f"Default playlist: {config.DEFAULT_PLAYLIST_ID}")
        logger.info(f"Secure origin: {config.SECURE_ORIGIN}")

        # upstream 엔드포인트용 (자체 서명 인증서라 검증은 설정에 따름)
        client = _make_client(config, transport, verify=config.VERIFY_ENDPOINT_TLS)
        # 프록시 릴레이 / 곡 URL / 외부 서비스용 (항상 인증서 검증)
        public_client = _make_client(config, transport, verify=True)
        app.state.http_client = client
        app.state.public_client = public_client
        app.state.engine = PlaylistEngine.from_client(config, client, public_client=public_client)

        logger.info("=" * 60)
        logger.info(f"{config.SERVICE_NAME} Ready!")
        logger.info("=" * 60)

        yield

        # Shutdown
        logger.info(f"{config.SERVICE_NAME} Shutting down...")
        await client.aclose()
        await public_client.aclose()

    app = FastAPI(
        title="MuHan Music API",
        description="불안정한 upstream 음악 API 앞단의 플레이리스트 조회 서비스",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS 설정 (엣지 함수 응답 헤더와 동일)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "music_u"],
        max_age=86400,
    )

    # 라우터 등록
    app.include_router(routes_health.router)
    app.include_router(routes_playlist.router)
    app.include_router(routes_diagnostics.router)
    app.include_router(routes_songs.router)

    @app.get("/")
    async def root():
        """루트 엔드포인트"""
        return {
            "service": "MuHan Music API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    return app


app = create_app()
