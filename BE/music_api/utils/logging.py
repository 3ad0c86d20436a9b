"""
Music API Logging Configuration
로깅 설정
"""

import logging
import sys
from typing import Union


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """로깅 설정 (stdout 한 곳으로)"""
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # httpx 요청 로그는 엔진 로그와 겹쳐서 한 단계 낮춤
    logging.getLogger("httpx").setLevel(logging.WARNING)
