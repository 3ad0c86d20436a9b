"""
Music API Page Aggregator
여러 논리 페이지를 가져와 곡 목록을 병합
- 순차 모드: 1..N 페이지를 하나씩
- 랜덤 모드: 1페이지 + 임의의 K 페이지
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

import numpy as np

from ..schemas.songs import Song
from .escalation import EscalationPolicy
from .fallback import mock_many_songs
from .outcomes import AggregateResult, PageRequest, Resolution, describe

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def log_resolution(resolution: Resolution, playlist_id: int) -> None:
    """흡수된 실패를 엔드포인트/페이지/원인과 함께 기록"""
    for record in resolution.attempts:
        if record.kind == "success":
            logger.debug(
                f"playlist={playlist_id} page={record.page} endpoint={record.endpoint} "
                f"proxy={record.via_proxy} ok ({record.elapsed:.3f}s)"
            )
        else:
            logger.warning(
                f"playlist={playlist_id} page={record.page} endpoint={record.endpoint} "
                f"proxy={record.via_proxy} failed: {record.cause} ({record.elapsed:.3f}s)"
            )
    if resolution.response is None:
        logger.warning(
            f"playlist={playlist_id}: all endpoints failed "
            f"({describe(resolution.outcome)}, attempts={len(resolution.attempts)})"
        )


class PageAggregator:
    """
    페이지 병합기

    병합 리스트는 호출마다 새로 만들고 호출이 끝날 때까지 이 호출만 소유
    """

    def __init__(
        self,
        policy: EscalationPolicy,
        page_delay: float = 0.2,
        sample_page_size: int = 20,
        page_cap: int = 50,
        fanout: int = 5,
        rng: Optional[np.random.Generator] = None,
        sleep: Optional[Sleep] = None
    ):
        """
        Args:
            policy: 페이지 1개를 얻는 EscalationPolicy
            page_delay: 순차 모드 페이지 사이 지연 (초)
            sample_page_size: 랜덤 모드 페이지 크기
            page_cap: 랜덤 모드에서 고를 수 있는 최대 페이지 번호
            fanout: 랜덤 모드 동시 요청 상한
            rng: 페이지 선택용 numpy Generator (테스트에서 seed 고정)
            sleep: 지연 함수 (기본 asyncio.sleep)
        """
        self.policy = policy
        self.page_delay = page_delay
        self.sample_page_size = sample_page_size
        self.page_cap = page_cap
        self.fanout = fanout
        self.rng = rng if rng is not None else np.random.default_rng()
        self._sleep = sleep or asyncio.sleep

    async def sequential(self, request: PageRequest, pages: int) -> AggregateResult:
        """
        1..pages 페이지를 순서대로 하나씩 요청

        - 1페이지 실패 -> 더미 결과
        - 이후 페이지 실패 -> 기록하고 건너뜀
        - total_pages 는 마지막 성공 응답 기준
        """
        songs: List[Song] = []
        total_pages = 1

        logger.info(f"Sequential fetch: playlist={request.playlist_id}, pages={pages}")

        for page in range(1, pages + 1):
            resolution = await self.policy.resolve(request.with_page(page))
            log_resolution(resolution, request.playlist_id)

            response = resolution.response
            if response is None:
                if page == 1:
                    logger.warning("First page unavailable, using placeholder songs")
                    return mock_many_songs()
            else:
                songs.extend(response.songs)
                total_pages = response.pagination.total_pages
                logger.info(f"Page {page} ok: {len(response.songs)} songs")

            # upstream 부하를 줄이기 위한 페이지 간 지연
            if page < pages:
                await self._sleep(self.page_delay)

        logger.info(f"Sequential fetch done: {len(songs)} songs, total_pages={total_pages}")
        return AggregateResult(songs=songs, total_pages=total_pages)

    def choose_pages(self, total_pages: int, samples: int) -> List[int]:
        """[2, min(total_pages, page_cap)] 에서 중복 없이 min(samples, total_pages - 1) 개 선택"""
        upper = min(total_pages, self.page_cap)
        pool = np.arange(2, upper + 1)
        k = min(samples, total_pages - 1, len(pool))
        if k <= 0:
            return []
        return [int(page) for page in self.rng.choice(pool, size=k, replace=False)]

    async def random_sample(self, request: PageRequest, samples: int) -> AggregateResult:
        """
        1페이지로 총 페이지 수를 알아낸 뒤 임의의 페이지를 추가로 요청

        - 1페이지 실패 -> 더미 결과
        - 추가 페이지 실패 -> 기록하고 생략 (부분 결과 허용)
        """
        first_request = request.with_page(1, self.sample_page_size)
        first = await self.policy.resolve(first_request)
        log_resolution(first, request.playlist_id)

        if first.response is None:
            logger.warning("First page unavailable, using placeholder songs")
            return mock_many_songs()

        songs: List[Song] = list(first.response.songs)
        total_pages = first.response.pagination.total_pages
        logger.info(f"Page 1 ok: total_pages={total_pages}, songs={len(songs)}")

        selected = self.choose_pages(total_pages, samples)
        if not selected:
            return AggregateResult(songs=songs, total_pages=total_pages)

        logger.info(f"Random pages selected: {selected}")

        semaphore = asyncio.Semaphore(self.fanout)

        async def fetch(page: int) -> Tuple[int, Resolution]:
            async with semaphore:
                return page, await self.policy.resolve(first_request.with_page(page))

        # 바깥 호출이 취소되면 gather 가 진행 중인 요청도 모두 취소함
        results = await asyncio.gather(*(fetch(page) for page in selected))

        for page, resolution in results:
            log_resolution(resolution, request.playlist_id)
            if resolution.response is None:
                logger.warning(f"Page {page} skipped")
                continue
            songs.extend(resolution.response.songs)
            logger.info(f"Page {page} ok: {len(resolution.response.songs)} songs")

        logger.info(f"Random sample done: {len(songs)} songs from {1 + len(selected)} pages")
        return AggregateResult(songs=songs, total_pages=total_pages)
