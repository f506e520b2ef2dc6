import logging
from typing import Optional, Protocol

import httpx
import redis.asyncio as redis
from pydantic import BaseModel, ConfigDict, ValidationError

from bot_detection import detect_bot
from config import GateConfig, Settings
from decision import DenialReason, PolicyDecision, RateLimitTier, Role, make_decision
from rate_limit import check_rate_limit
from shield import inspect_request

logger = logging.getLogger("acquisitions.classifier")


class ClassifierError(Exception):
    """The classifier could not produce a decision."""


class CallerContext(BaseModel):
    """
    Request facts handed to a classifier.
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    ip: str
    method: str
    path: str
    query: str = ""
    user_agent: Optional[str] = None


class PolicyClassifier(Protocol):
    async def evaluate(self, caller: CallerContext, role: Role, tier: RateLimitTier) -> PolicyDecision:
        ...


# ======================================================
# Local rules (bot -> shield -> rate limit)
# ======================================================

class LocalPolicyClassifier:
    def __init__(self, redis_client: redis.Redis, config: GateConfig):
        self.redis_client = redis_client
        self.config = config

    async def evaluate(self, caller: CallerContext, role: Role, tier: RateLimitTier) -> PolicyDecision:
        bot_signature = detect_bot(caller.user_agent, self.config.bot_allowlist)
        shield_rules = inspect_request(path=caller.path, query=caller.query)

        rate_allowed, remaining = True, tier.max_requests

        # Denied bot/shield traffic must not eat into the caller's budget
        if not bot_signature and not shield_rules:
            try:
                rate_allowed, remaining = await check_rate_limit(
                    self.redis_client,
                    identifier=caller.identifier,
                    role=role,
                    tier=tier,
                )
            except redis.RedisError as e:
                raise ClassifierError(f"rate limit store unavailable: {type(e).__name__}") from e

        return make_decision(
            bot_signature=bot_signature,
            shield_rules=shield_rules,
            rate_limit_allowed=rate_allowed,
            remaining_requests=remaining,
        )


# ======================================================
# Hosted decision service
# ======================================================

class RemoteDecision(BaseModel):
    conclusion: str
    reason: Optional[str] = None


class RemotePolicyClassifier:
    """
    Client for a hosted decision service.

    Any transport error, non-2xx status or malformed body is a
    ClassifierError. Unknown denial reasons map to an unspecified denial.
    """

    def __init__(self, base_url: str, api_key: Optional[str], timeout: float = 2.0, client: Optional[httpx.AsyncClient] = None):
        self.url = f"{base_url.rstrip('/')}/v1/decide"
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def evaluate(self, caller: CallerContext, role: Role, tier: RateLimitTier) -> PolicyDecision:
        headers = {}
        if self.api_key:
            headers["authorization"] = f"Bearer {self.api_key}"

        payload = {
            "caller": caller.model_dump(),
            "role": role.value,
            "tier": tier.model_dump(),
        }

        try:
            resp = await self._client.post(self.url, json=payload, headers=headers)
            resp.raise_for_status()
            body = RemoteDecision.model_validate(resp.json())
        except httpx.HTTPError as e:
            raise ClassifierError(f"decision service request failed: {type(e).__name__}") from e
        except (ValueError, ValidationError) as e:
            raise ClassifierError("decision service returned a malformed body") from e

        conclusion = body.conclusion.upper()
        if conclusion == "ALLOW":
            return PolicyDecision.allow()
        if conclusion != "DENY":
            raise ClassifierError(f"unknown conclusion: {body.conclusion!r}")

        try:
            reason = DenialReason((body.reason or "").upper())
        except ValueError:
            reason = None

        return PolicyDecision.deny(reason, remote_reason=body.reason)

    async def aclose(self):
        await self._client.aclose()


def build_classifier(settings: Settings, config: GateConfig, redis_client: redis.Redis) -> PolicyClassifier:
    mode = settings.CLASSIFIER_MODE.lower()

    if mode == "remote":
        if not settings.CLASSIFIER_URL:
            raise ValueError("CLASSIFIER_URL is required when CLASSIFIER_MODE=remote")
        logger.info(f"Using hosted policy classifier at {settings.CLASSIFIER_URL}")
        return RemotePolicyClassifier(
            settings.CLASSIFIER_URL,
            settings.CLASSIFIER_API_KEY,
            timeout=settings.CLASSIFIER_TIMEOUT_SECONDS,
        )

    if mode != "local":
        raise ValueError(f"Unknown CLASSIFIER_MODE: {settings.CLASSIFIER_MODE}")

    logger.info("Using local policy classifier")
    return LocalPolicyClassifier(redis_client, config)
