"""
Music API Network Test API
운영 환경 네트워크 진단 라우터
"""

import logging
import platform
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..core.engine import InvalidInputError
from ..schemas.common import InvalidTestResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["diagnostics"])

AVAILABLE_TESTS = ["local", "proxy", "external", "music"]


class NetworkTestResponse(BaseModel):
    """네트워크 테스트 응답"""
    success: bool
    testType: str
    timestamp: str
    data: Dict[str, Any]


def _local_environment(request: Request) -> Dict[str, Any]:
    config = request.app.state.config
    return {
        "pythonVersion": platform.python_version(),
        "platform": sys.platform,
        "arch": platform.machine(),
        "endpointCount": len(request.app.state.engine.registry),
        "secureOrigin": config.SECURE_ORIGIN,
        "hasMusicU": bool(config.MUSIC_U),
    }


def _summary(results: List[Dict[str, Any]]) -> Dict[str, int]:
    successful = sum(1 for result in results if result["ok"])
    return {"total": len(results), "successful": successful, "failed": len(results) - successful}


async def _proxy_capabilities(request: Request, playlist_id: Optional[int]) -> Dict[str, Any]:
    probes = await request.app.state.engine.probe_relays(playlist_id)
    results = [asdict(probe) for probe in probes]
    return {"summary": _summary(results), "relays": results}


async def _external_services(request: Request) -> Dict[str, Any]:
    checks = await request.app.state.engine.check_external()
    results = [asdict(check) for check in checks]
    return {"summary": _summary(results), "tests": results}


async def _music_connectivity(request: Request, playlist_id: Optional[int]) -> Dict[str, Any]:
    probes = await request.app.state.engine.probe_endpoints(playlist_id)
    results: List[Dict[str, Any]] = [asdict(probe) for probe in probes]
    return {
        "reachable": sum(1 for probe in probes if probe.ok),
        "total": len(probes),
        "endpoints": results,
    }


@router.get(
    "/network-test",
    response_model=NetworkTestResponse,
    responses={400: {"model": InvalidTestResponse, "description": "Invalid test type"}}
)
async def network_test(
    request: Request,
    test: str = Query(default="local", description="테스트 종류 (local | proxy | external | music)"),
    playlist_id: Optional[int] = Query(default=None, description="music / proxy 테스트용 플레이리스트 ID")
):
    """
    네트워크 진단

    - local: 런타임 정보
    - proxy: 프록시 릴레이별 우회 요청 1회
    - external: 외부 공개 서비스 GET 1회씩
    - music: 엔드포인트별 직접 요청 1회 (재시도/프록시 없음)
    """
    logger.info(f"[Network Test] type={test}")

    if test not in AVAILABLE_TESTS:
        return JSONResponse(
            status_code=400,
            content=InvalidTestResponse(error="Invalid test type", availableTests=AVAILABLE_TESTS).model_dump()
        )

    try:
        if test == "local":
            data = _local_environment(request)
        elif test == "proxy":
            data = await _proxy_capabilities(request, playlist_id)
        elif test == "external":
            data = await _external_services(request)
        else:
            data = await _music_connectivity(request, playlist_id)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return NetworkTestResponse(
        success=True,
        testType=test,
        timestamp=datetime.now(timezone.utc).isoformat(),
        data=data
    )
