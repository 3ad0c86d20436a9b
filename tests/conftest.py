"""Shared fixtures: a scriptable fake upstream behind httpx.MockTransport."""

import httpx
import numpy as np
import pytest

from music_api.core.engine import PlaylistEngine

from fakes import FakeUpstream, RecordingSleep, make_settings


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def http_client(upstream: FakeUpstream):
    async with httpx.AsyncClient(transport=upstream.transport()) as client:
        yield client


@pytest.fixture
def engine_factory(http_client: httpx.AsyncClient, sleeper: RecordingSleep):
    def factory(**overrides) -> PlaylistEngine:
        return PlaylistEngine.from_client(
            make_settings(**overrides),
            http_client,
            rng=np.random.default_rng(7),
            sleep=sleeper,
        )
    return factory
