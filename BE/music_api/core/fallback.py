"""
Music API Degradation Fallback
upstream 을 전혀 못 쓸 때 내려주는 결정적(deterministic) 더미 데이터
"""

from typing import List

from ..schemas.playlist import MAX_PAGE_SIZE, SUCCESS_CODE, Pagination, PlaylistResponse
from ..schemas.songs import Song
from .outcomes import AggregateResult

PLACEHOLDER_MARKER = "[placeholder]"
PLACEHOLDER_PLAYLIST_NAME = f"Sample Playlist {PLACEHOLDER_MARKER}"
PLACEHOLDER_AUDIO_URL = "https://www.soundjay.com/misc/sounds/bell-ringing-05.wav"

MOCK_MANY_COUNT = 100
MOCK_MANY_TOTAL_PAGES = 5

_COVER_COLORS = ("4f46e5", "7c3aed")


def _cover_url(color: str, label: str) -> str:
    return f"https://via.placeholder.com/300x300/{color}/ffffff?text={label}"


def is_placeholder(response: PlaylistResponse) -> bool:
    """더미 응답 여부"""
    return PLACEHOLDER_MARKER in response.playlist_name


def mock_playlist(page: int, page_size: int, playlist_id: int) -> PlaylistResponse:
    """
    단일 페이지 더미 응답

    네트워크/랜덤 없음, 같은 입력이면 항상 같은 결과
    pagination: total = len(songs), total_pages = 1, has_next = False
    """
    songs = [
        Song(
            id=index,
            name=f"Sample Song {index}",
            artist="Sample Artist" if index == 1 else f"Sample Artist {index}",
            url=PLACEHOLDER_AUDIO_URL,
            pic_url=_cover_url(color, "Music"),
        )
        for index, color in enumerate(_COVER_COLORS, 1)
    ]

    return PlaylistResponse(
        code=SUCCESS_CODE,
        playlist_id=playlist_id,
        playlist_name=PLACEHOLDER_PLAYLIST_NAME,
        songs=songs,
        pagination=Pagination.build(
            page=page,
            page_size=min(page_size, MAX_PAGE_SIZE),
            total=len(songs),
            total_pages=1,
        ),
    )


def mock_many_songs(count: int = MOCK_MANY_COUNT, total_pages: int = MOCK_MANY_TOTAL_PAGES) -> AggregateResult:
    """
    여러 페이지 병합 실패 시 더미 결과

    커버 색상은 곡 번호에서 계산 (랜덤 아님)
    """
    songs: List[Song] = []
    for i in range(1, count + 1):
        color = f"{(i * 2654435761) % 0xFFFFFF:06x}"
        songs.append(Song(
            id=i,
            name=f"Sample Song {i}",
            artist=f"Sample Artist {(i + 9) // 10}",
            url=PLACEHOLDER_AUDIO_URL,
            pic_url=_cover_url(color, f"Music{i}"),
        ))

    return AggregateResult(songs=songs, total_pages=total_pages, placeholder=True)
