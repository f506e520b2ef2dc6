from enum import Enum
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"
    GUEST = "guest"


class RateLimitTier(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_requests: int = Field(gt=0)
    window_seconds: int = Field(gt=0)


class Decision(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class DenialReason(str, Enum):
    BOT = "BOT"
    SHIELD = "SHIELD"
    RATE_LIMIT = "RATE_LIMIT"


class PolicyDecision(BaseModel):
    """
    Per-request verdict. A DENY with no reason is an unspecified denial.
    """

    model_config = ConfigDict(frozen=True)

    decision: Decision
    reason: Optional[DenialReason] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _allow_has_no_reason(self) -> "PolicyDecision":
        if self.decision == Decision.ALLOW and self.reason is not None:
            raise ValueError("an ALLOW decision cannot carry a denial reason")
        return self

    @property
    def allowed(self) -> bool:
        return self.decision == Decision.ALLOW

    @classmethod
    def allow(cls, **metadata: Any) -> "PolicyDecision":
        return cls(decision=Decision.ALLOW, metadata=metadata)

    @classmethod
    def deny(cls, reason: Optional[DenialReason], **metadata: Any) -> "PolicyDecision":
        return cls(decision=Decision.DENY, reason=reason, metadata=metadata)


def make_decision(
    *,
    bot_signature: Optional[str],
    shield_rules: Sequence[str],
    rate_limit_allowed: bool,
    remaining_requests: int,
) -> PolicyDecision:
    """
    Combine the individual policy signals into one decision.

    Precedence (first match wins):
    - Bot
    - Shield
    - Rate limit
    """
    metadata = {
        "remaining_requests": remaining_requests,
        "bot_signature": bot_signature,
        "shield_rules": list(shield_rules),
    }

    if bot_signature:
        return PolicyDecision.deny(DenialReason.BOT, **metadata)

    if shield_rules:
        return PolicyDecision.deny(DenialReason.SHIELD, **metadata)

    if not rate_limit_allowed:
        return PolicyDecision.deny(DenialReason.RATE_LIMIT, **metadata)

    return PolicyDecision.allow(**metadata)
