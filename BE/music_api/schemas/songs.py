"""
Music API Song Schemas
곡 관련 스키마
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class Song(BaseModel):
    """곡 정보 (응답 이후 변경 불가)"""
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    artist: str
    url: str  # 재생 가능한 미디어 URI
    pic_url: str  # 커버 이미지 URI


class SongMetadata(BaseModel):
    """곡 URL HEAD 응답에서 얻은 메타데이터"""
    url: str
    size: int  # content-length (bytes), 모르면 0
    content_type: Optional[str] = None
