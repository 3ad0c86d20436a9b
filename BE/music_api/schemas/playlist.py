"""
Music API Playlist Schemas
플레이리스트 응답 봉투 및 페이지네이션 스키마
"""

from typing import List

from pydantic import BaseModel, Field

from .songs import Song

# upstream API가 page_size > 100 요청을 거부함
MAX_PAGE_SIZE = 100
SUCCESS_CODE = 200


class Pagination(BaseModel):
    """페이지네이션 메타데이터"""
    page: int = Field(ge=1)
    page_size: int = Field(gt=0, le=MAX_PAGE_SIZE)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=1)
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, page_size: int, total: int, total_pages: int) -> "Pagination":
        """has_next / has_prev 를 page, total_pages 로부터 계산"""
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class PlaylistResponse(BaseModel):
    """
    플레이리스트 응답 봉투

    code == 200 만 성공으로 취급 (전송이 성공해도 다른 값이면 실패)
    """
    code: int
    playlist_id: int
    playlist_name: str
    songs: List[Song]
    pagination: Pagination

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE


class AggregateResponse(BaseModel):
    """여러 페이지 병합 응답 (/playlist/pages, /playlist/random)"""
    songs: List[Song]
    totalPages: int
    placeholder: bool = False
