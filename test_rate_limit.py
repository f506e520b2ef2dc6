import time

import pytest

from decision import RateLimitTier, Role
from rate_limit import check_rate_limit, rate_limit_key

GUEST_TIER = RateLimitTier(max_requests=5, window_seconds=60)


@pytest.mark.asyncio
async def test_sixth_request_in_window_is_rejected(fake_redis):
    results = [
        await check_rate_limit(fake_redis, identifier="ip:1.2.3.4", role=Role.GUEST, tier=GUEST_TIER)
        for _ in range(6)
    ]

    assert [allowed for allowed, _ in results] == [True] * 5 + [False]
    assert [remaining for _, remaining in results] == [4, 3, 2, 1, 0, 0]


@pytest.mark.asyncio
async def test_rejected_requests_do_not_consume_budget(fake_redis):
    for _ in range(8):
        await check_rate_limit(fake_redis, identifier="ip:1.2.3.4", role=Role.GUEST, tier=GUEST_TIER)

    assert await fake_redis.zcard(rate_limit_key("ip:1.2.3.4", Role.GUEST)) == 5


@pytest.mark.asyncio
async def test_callers_have_independent_windows(fake_redis):
    for _ in range(5):
        await check_rate_limit(fake_redis, identifier="ip:1.2.3.4", role=Role.GUEST, tier=GUEST_TIER)

    allowed, remaining = await check_rate_limit(fake_redis, identifier="ip:5.6.7.8", role=Role.GUEST, tier=GUEST_TIER)
    assert allowed is True
    assert remaining == 4


@pytest.mark.asyncio
async def test_window_slides(fake_redis):
    base = time.time()

    async def hit(offset):
        return await check_rate_limit(
            fake_redis, identifier="ip:1.2.3.4", role=Role.GUEST, tier=GUEST_TIER, now=base + offset
        )

    for offset in (0, 10, 20, 30, 40):
        await hit(offset)

    # +50s: all five still inside the window
    allowed, _ = await hit(50)
    assert allowed is False

    # +61s: the first request has left the window
    allowed, remaining = await hit(61)
    assert allowed is True
    assert remaining == 0
