"""
Music API Songs API
곡 URL 확인 라우터
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from ..core.engine import InvalidInputError
from ..schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["songs"])


class SongCheckResponse(BaseModel):
    """곡 URL 확인 결과"""
    url: str
    valid: bool
    size: int = 0
    contentType: Optional[str] = None


@router.get(
    "/songs/check",
    response_model=SongCheckResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid URL"}}
)
async def check_song(
    request: Request,
    url: str = Query(..., min_length=1, description="확인할 곡 URL (http/https)")
) -> SongCheckResponse:
    """
    곡 URL 확인

    - HEAD 요청 1회로 재생 가능 여부와 파일 크기 확인
    - 도달 실패는 에러가 아니라 valid=false
    """
    engine = request.app.state.engine

    try:
        metadata = await engine.get_song_metadata(url)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if metadata is None:
        return SongCheckResponse(url=url, valid=False)

    return SongCheckResponse(
        url=url,
        valid=True,
        size=metadata.size,
        contentType=metadata.content_type
    )
