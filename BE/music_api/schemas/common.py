"""
Music API Common Schemas
공통 스키마
"""

from typing import List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """에러 응답"""
    message: str
    detail: Optional[str] = None


class InvalidTestResponse(BaseModel):
    """지원하지 않는 네트워크 테스트 요청"""
    error: str
    availableTests: List[str]
