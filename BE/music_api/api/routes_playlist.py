"""
Music API Playlist Routes
플레이리스트 조회 라우터
"""

import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request, Response

from ..core.engine import InvalidInputError
from ..core.fallback import is_placeholder
from ..core.outcomes import AggregateResult
from ..schemas.common import ErrorResponse
from ..schemas.playlist import PlaylistResponse, AggregateResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["playlist"])

# 엣지에서 5분 캐시
CACHE_CONTROL = "max-age=300"


def _aggregate_response(result: AggregateResult) -> AggregateResponse:
    return AggregateResponse(
        songs=result.songs,
        totalPages=result.total_pages,
        placeholder=result.placeholder
    )


@router.get(
    "/playlist",
    response_model=PlaylistResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid input"}}
)
async def get_playlist(
    request: Request,
    response: Response,
    playlist_id: Optional[int] = Query(default=None, description="플레이리스트 ID (기본값: 설정)"),
    page: int = Query(default=1, description="페이지 번호 (1부터)"),
    page_size: Optional[int] = Query(default=None, description="페이지 크기 (100 초과는 100으로)"),
    cookies_json: Optional[str] = Query(default=None, description="upstream 에 넘길 cookies JSON"),
    refresh: bool = Query(default=False, description="캐시 무시"),
    music_u: Optional[str] = Header(default=None, convert_underscores=False, description="music_u 토큰")
) -> PlaylistResponse:
    """
    플레이리스트 한 페이지 조회

    upstream 이 죽어 있어도 에러 대신 더미 데이터 (code 200) 반환
    """
    engine = request.app.state.engine

    try:
        result = await engine.get_playlist(
            playlist_id=playlist_id,
            page=page,
            page_size=page_size,
            cookies_json=cookies_json,
            music_u=music_u,
            refresh=refresh
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Playlist error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if not is_placeholder(result):
        response.headers["Cache-Control"] = CACHE_CONTROL
    return result


@router.get(
    "/playlist/pages",
    response_model=AggregateResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid input"}}
)
async def get_playlist_pages(
    request: Request,
    playlist_id: Optional[int] = Query(default=None, description="플레이리스트 ID"),
    pages: Optional[int] = Query(default=None, description="앞에서부터 가져올 페이지 수 (기본값: PRELOAD_PAGES)"),
    page_size: Optional[int] = Query(default=None, description="페이지 크기"),
    cookies_json: Optional[str] = Query(default=None, description="upstream 에 넘길 cookies JSON"),
    refresh: bool = Query(default=False, description="캐시 무시"),
    music_u: Optional[str] = Header(default=None, convert_underscores=False, description="music_u 토큰")
) -> AggregateResponse:
    """앞쪽 N 페이지 순차 조회 후 병합"""
    engine = request.app.state.engine

    try:
        result = await engine.get_multiple_pages(
            playlist_id=playlist_id,
            pages=pages,
            page_size=page_size,
            cookies_json=cookies_json,
            music_u=music_u,
            refresh=refresh
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Playlist pages error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return _aggregate_response(result)


@router.get(
    "/playlist/random",
    response_model=AggregateResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid input"}}
)
async def get_playlist_random(
    request: Request,
    playlist_id: Optional[int] = Query(default=None, description="플레이리스트 ID"),
    samples: Optional[int] = Query(default=None, description="1페이지 외에 임의로 뽑을 페이지 수"),
    cookies_json: Optional[str] = Query(default=None, description="upstream 에 넘길 cookies JSON"),
    refresh: bool = Query(default=False, description="캐시 무시"),
    music_u: Optional[str] = Header(default=None, convert_underscores=False, description="music_u 토큰")
) -> AggregateResponse:
    """1페이지 + 임의 페이지 병합"""
    engine = request.app.state.engine

    try:
        result = await engine.get_random_sample(
            playlist_id=playlist_id,
            samples=samples,
            cookies_json=cookies_json,
            music_u=music_u,
            refresh=refresh
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Playlist random error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return _aggregate_response(result)
