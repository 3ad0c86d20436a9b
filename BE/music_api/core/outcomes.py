"""
Music API Fetch Outcomes
요청 단위(논리 페이지) 결과 타입
"""

from dataclasses import dataclass, field, replace
from typing import ClassVar, List, Optional, Union

from ..schemas.playlist import MAX_PAGE_SIZE, PlaylistResponse
from ..schemas.songs import Song

# TransportError.cause 값
CAUSE_TIMEOUT = "timeout"
CAUSE_CONNECT = "connect"
CAUSE_NETWORK = "network"
CAUSE_HTTP_STATUS = "http_status"
CAUSE_INVALID_PAYLOAD = "invalid_payload"


@dataclass(frozen=True)
class PageRequest:
    """논리 페이지 하나 (어느 엔드포인트가 응답하든 동일)"""
    playlist_id: int
    page: int = 1
    page_size: int = 20
    cookies_json: Optional[str] = None
    music_u: Optional[str] = None

    @property
    def clamped_page_size(self) -> int:
        return min(self.page_size, MAX_PAGE_SIZE)

    def with_page(self, page: int, page_size: Optional[int] = None) -> "PageRequest":
        if page_size is None:
            return replace(self, page=page)
        return replace(self, page=page, page_size=page_size)


@dataclass(frozen=True)
class Success:
    kind: ClassVar[str] = "success"
    response: PlaylistResponse


@dataclass(frozen=True)
class TransportError:
    """timeout, 연결 실패, HTTP 상태 오류, 파싱 실패 (일시적 오류로 간주)"""
    kind: ClassVar[str] = "transport_error"
    cause: str
    detail: str = ""


@dataclass(frozen=True)
class ProtocolBlocked:
    """브라우저 보안 정책(mixed content / CORS)에 의한 차단"""
    kind: ClassVar[str] = "protocol_blocked"
    detail: str = ""


@dataclass(frozen=True)
class ApplicationError:
    """전송은 성공했지만 upstream 이 code != 200 을 돌려줌 (재시도 안 함)"""
    kind: ClassVar[str] = "application_error"
    code: int


@dataclass(frozen=True)
class Exhausted:
    """모든 엔드포인트/프록시 실패"""
    kind: ClassVar[str] = "exhausted"


FetchOutcome = Union[Success, TransportError, ProtocolBlocked, ApplicationError, Exhausted]


def describe(outcome: FetchOutcome) -> str:
    """로그용 한 줄 설명"""
    if isinstance(outcome, TransportError):
        return f"{outcome.cause}: {outcome.detail}" if outcome.detail else outcome.cause
    if isinstance(outcome, ProtocolBlocked):
        return f"protocol blocked: {outcome.detail}" if outcome.detail else "protocol blocked"
    if isinstance(outcome, ApplicationError):
        return f"API Error: {outcome.code}"
    return outcome.kind


@dataclass(frozen=True)
class AttemptRecord:
    """네트워크 요청 1회 기록"""
    endpoint: str
    page: int
    via_proxy: Optional[str]
    kind: str
    cause: str
    elapsed: float


@dataclass
class Resolution:
    """EscalationPolicy.resolve 결과: 최종 outcome + 시도 기록"""
    outcome: FetchOutcome
    attempts: List[AttemptRecord] = field(default_factory=list)

    @property
    def response(self) -> Optional[PlaylistResponse]:
        if isinstance(self.outcome, Success):
            return self.outcome.response
        return None

    def attempts_against(self, endpoint: str, via_proxy: bool = False) -> List[AttemptRecord]:
        return [
            a for a in self.attempts
            if a.endpoint == endpoint and (a.via_proxy is not None) == via_proxy
        ]


@dataclass
class AggregateResult:
    """여러 페이지 병합 결과 (중복 id 허용, 순서 = fetch 순서)"""
    songs: List[Song]
    total_pages: int
    placeholder: bool = False
