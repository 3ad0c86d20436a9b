"""
Music API Backend Configuration
환경변수 기반 설정 관리
"""

from typing import List, Literal
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Service info
    SERVICE_NAME: str = Field(default="MuHan Music API", description="서비스 이름")
    SERVICE_VERSION: str = Field(default="1.0.0", description="서비스 버전")

    # Upstream endpoints (앞쪽일수록 우선, 인증서가 불안정해서 HTTP가 먼저)
    API_BASE: str = Field(default="http://111.170.19.241:8002", description="기본 upstream 주소")
    API_ENDPOINTS: List[str] = Field(
        default=[
            "http://111.170.19.241:8002",
            "https://111.170.19.241:8002",
        ],
        description="후보 upstream 엔드포인트 목록 (우선순위 순)"
    )
    PROXY_RELAYS: List[str] = Field(
        default=[
            "https://api.allorigins.win/raw?url=",
            "https://cors-anywhere.herokuapp.com/",
        ],
        description="공개 CORS 프록시 접두사 목록 (대상 URL을 인코딩해서 뒤에 붙임)"
    )
    SECURE_ORIGIN: bool = Field(default=False, description="호출 측이 HTTPS 오리진인지 여부")
    MUSIC_U: str = Field(default="", description="기본 music_u 토큰 (호출자가 안 주면 사용)")
    VERIFY_ENDPOINT_TLS: bool = Field(
        default=False,
        description="upstream HTTPS 엔드포인트 인증서 검증 여부 (자체 서명 인증서라 기본 끔, 프록시/외부 요청은 항상 검증)"
    )

    # Playlist defaults
    DEFAULT_PLAYLIST_ID: int = Field(default=12291029891, ge=1, description="기본 플레이리스트 ID")
    PAGE_SIZE: int = Field(default=60, ge=1, le=100, description="기본 페이지 크기")
    PRELOAD_PAGES: int = Field(default=10, ge=1, description="순차 모드 기본 페이지 수")

    # Retry / escalation
    REQUEST_TIMEOUT_SEC: float = Field(default=8.0, gt=0, description="요청 1회 타임아웃 (초)")
    MAX_ATTEMPTS_PER_ENDPOINT: int = Field(default=2, ge=1, le=5, description="엔드포인트당 최대 시도 횟수")
    RETRY_BASE_DELAY_SEC: float = Field(default=1.0, ge=0.0, description="재시도 backoff 기본 지연 (attempt * base)")

    # Aggregation
    PAGE_DELAY_SEC: float = Field(default=0.2, ge=0.0, description="순차 모드 페이지 간 지연 (초)")
    RANDOM_SAMPLE_PAGES: int = Field(default=2, ge=1, description="랜덤 모드에서 추가로 뽑을 페이지 수")
    RANDOM_SAMPLE_PAGE_SIZE: int = Field(default=20, ge=1, le=100, description="랜덤 모드 페이지 크기")
    RANDOM_PAGE_CAP: int = Field(default=50, ge=2, description="랜덤 모드에서 고를 수 있는 최대 페이지 번호")
    SAMPLE_FANOUT: int = Field(default=5, ge=1, description="랜덤 모드 동시 요청 수 상한")

    # In-process cache (재시작하면 사라짐)
    CACHE_MAXSIZE: int = Field(default=128, ge=0, description="캐시 최대 항목 수 (0이면 캐시 끔)")
    CACHE_TTL_SEC: int = Field(default=300, ge=0, description="캐시 TTL (초)")

    # Diagnostics
    EXTERNAL_TEST_URLS: List[str] = Field(
        default=[
            "https://dns.google/resolve?name=example.com&type=A",
            "https://api.github.com/zen",
            "https://jsonplaceholder.typicode.com/posts/1",
            "https://httpbin.org/ip",
        ],
        description="외부 서비스 접근 테스트 대상 (network-test?test=external)"
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="로그 레벨")

    # Settings 모델이 환경변수를 어떻게 읽을지 규칙을 알려주는 설정 클래스
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    def endpoint_urls(self) -> List[str]:
        """API_BASE 를 맨 앞에 두고 중복 없이 엔드포인트 목록 반환"""
        urls: List[str] = []
        for url in [self.API_BASE, *self.API_ENDPOINTS]:
            url = url.strip().rstrip("/")
            if url and url not in urls:
                urls.append(url)
        return urls


def get_settings() -> Settings:
    return Settings()
