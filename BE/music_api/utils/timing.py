"""
Music API Timing Utilities
시간 측정 유틸리티
"""

import time
import logging

logger = logging.getLogger(__name__)


class Timer:
    """컨텍스트 매니저 타이머 (name 이 있으면 debug 로그 출력)"""

    def __init__(self, name: str = ""):
        self.name = name
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self._start
        if self.name:
            logger.debug(f"{self.name} took {self.elapsed:.4f}s")
