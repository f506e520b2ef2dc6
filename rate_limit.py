import time
import uuid
from typing import Optional, Tuple

import redis.asyncio as redis

from decision import RateLimitTier, Role


# =========================
# Helpers
# =========================

def rate_limit_key(identifier: str, role: Role) -> str:
    return f"rate_limit:{role.value}:{identifier}"


# =========================
# Sliding Window Limiter
# =========================

async def check_rate_limit(
    redis_client: redis.Redis,
    *,
    identifier: str,
    role: Role,
    tier: RateLimitTier,
    now: Optional[float] = None,
) -> Tuple[bool, int]:
    """
    Sliding-window log limiter backed by a Redis sorted set.

    Each accepted request is stored as a member scored by its timestamp;
    members older than the window are pruned before counting. A rejected
    request is removed again so it does not consume budget.

    Returns:
        allowed (bool)
        remaining_requests (int)
    """
    if now is None:
        now = time.time()
    key = rate_limit_key(identifier, role)
    member = f"{now:.6f}:{uuid.uuid4().hex}"

    async with redis_client.pipeline(transaction=True) as pipe:
        pipe.zremrangebyscore(key, 0, now - tier.window_seconds)
        pipe.zadd(key, {member: now})
        pipe.zcard(key)
        pipe.expire(key, tier.window_seconds)
        results = await pipe.execute()

    current_count = int(results[2])

    # ---- HARD BLOCK ----
    if current_count > tier.max_requests:
        await redis_client.zrem(key, member)
        return False, 0

    return True, tier.max_requests - current_count
