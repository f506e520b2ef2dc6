import ipaddress
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from classifier import CallerContext, ClassifierError, PolicyClassifier
from config import GateConfig
from decision import DenialReason, PolicyDecision, Role
from schemas import GateErrorResponse

logger = logging.getLogger("acquisitions.gate")

CallNext = Callable[[Request], Awaitable[Response]]
IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


# ======================================================
# Gate Event (logged on denial / failure)
# ======================================================

class GateEvent(BaseModel):
    timestamp: str
    caller: str
    role: str
    method: str
    path: str
    outcome: str
    reason: Optional[str]
    status_code: int


# ======================================================
# Terminal responses
# ======================================================

DENIAL_RESPONSES = {
    DenialReason.BOT: (status.HTTP_403_FORBIDDEN, "Forbidden", "Automated requests are not allowed"),
    DenialReason.SHIELD: (status.HTTP_403_FORBIDDEN, "Forbidden", "Request blocked by security policy"),
    DenialReason.RATE_LIMIT: (status.HTTP_429_TOO_MANY_REQUESTS, "Too Many Requests", "Rate limit exceeded"),
}

GENERIC_DENIAL = (status.HTTP_403_FORBIDDEN, "Forbidden", "Access denied")


def terminal_response(status_code: int, error: str, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=GateErrorResponse(error=error, message=message).model_dump(),
        headers=headers,
    )


def denial_response(decision: PolicyDecision, retry_after: int) -> JSONResponse:
    status_code, error, message = DENIAL_RESPONSES.get(decision.reason, GENERIC_DENIAL)
    headers = None
    if decision.reason == DenialReason.RATE_LIMIT:
        headers = {"Retry-After": str(retry_after)}
    return terminal_response(status_code, error, message, headers)


# ======================================================
# Caller resolution
# ======================================================

def _parse_networks(entries: Iterable[str]) -> List[IPNetwork]:
    return [ipaddress.ip_network(entry, strict=False) for entry in entries]


def _parse_ip(value: str) -> Optional[IPAddress]:
    try:
        return ipaddress.ip_address(value.strip())
    except ValueError:
        return None


def resolve_client_ip(request: Request, trusted_proxies: List[IPNetwork]) -> str:
    """
    Resolve the caller address.

    Precedence:
    1. Direct peer, unless the peer sits inside a trusted proxy network.
    2. X-Forwarded-For, walked right to left, first hop that is not a
       trusted proxy.
    3. X-Real-IP.
    4. Direct peer.

    Forwarding headers are attacker-controlled, so they are only read
    when the immediate peer is a trusted proxy.
    """
    peer = request.client.host if request.client else "unknown"
    peer_ip = _parse_ip(peer)

    def is_trusted(addr: IPAddress) -> bool:
        return any(addr in network for network in trusted_proxies)

    if peer_ip is None or not is_trusted(peer_ip):
        return peer

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        hops = [_parse_ip(hop) for hop in forwarded_for.split(",")]
        for hop in reversed(hops):
            if hop is not None and not is_trusted(hop):
                return str(hop)

    real_ip = _parse_ip(request.headers.get("x-real-ip", ""))
    if real_ip is not None:
        return str(real_ip)

    return peer


def resolve_role(request: Request) -> Role:
    user = getattr(request.state, "user", None)
    if user is None:
        return Role.GUEST
    return user.role


def caller_identifier(request: Request, client_ip: str) -> str:
    user = getattr(request.state, "user", None)
    if user is not None:
        return f"user:{user.id}"
    return f"ip:{client_ip}"


# ======================================================
# Request Gate
# ======================================================

class RequestGate:
    """
    Gates every inbound request through the policy classifier.

    Every path through __call__ ends in exactly one return: either the
    downstream response from call_next, or a terminal response built here.
    """

    def __init__(self, config: GateConfig, classifier: PolicyClassifier):
        self.config = config
        self.classifier = classifier
        self._trusted_proxies = _parse_networks(config.trusted_proxies)

    def is_excluded(self, path: str) -> bool:
        return path in self.config.excluded_paths

    def _log_event(self, level: int, caller: CallerContext, role: Role, reason: str, status_code: int, outcome: str):
        event = GateEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            caller=caller.identifier,
            role=role.value,
            method=caller.method,
            path=caller.path,
            outcome=outcome,
            reason=reason,
            status_code=status_code,
        )
        logger.log(level, event.model_dump_json())

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path

        if self.is_excluded(path):
            return await call_next(request)

        # --------------------------------------------------
        # Role resolution
        # --------------------------------------------------

        role = resolve_role(request)
        tier = self.config.tier_for(role)

        client_ip = resolve_client_ip(request, self._trusted_proxies)
        caller = CallerContext(
            identifier=caller_identifier(request, client_ip),
            ip=client_ip,
            method=request.method,
            path=path,
            query=request.url.query,
            user_agent=request.headers.get("user-agent"),
        )

        # --------------------------------------------------
        # Decision (fail closed)
        # --------------------------------------------------

        try:
            decision = await self.classifier.evaluate(caller, role, tier)
            if not isinstance(decision, PolicyDecision):
                raise ClassifierError(f"classifier returned {type(decision).__name__}, not a decision")
        except Exception as e:
            self._log_event(
                logging.ERROR,
                caller,
                role,
                reason=f"{type(e).__name__}: {e}",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                outcome="FAILED",
            )
            return terminal_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal Server Error",
                "Security middleware failure",
            )

        # --------------------------------------------------
        # Response mapping
        # --------------------------------------------------

        if not decision.allowed:
            response = denial_response(decision, retry_after=tier.window_seconds)
            self._log_event(
                logging.WARNING,
                caller,
                role,
                reason=decision.reason.value if decision.reason else "UNSPECIFIED",
                status_code=response.status_code,
                outcome="DENIED",
            )
            return response

        return await call_next(request)
