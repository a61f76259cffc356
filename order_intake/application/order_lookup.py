import logging
from typing import Any, Optional

from order_intake.core.config import settings
from order_intake.domain.errors import OrderRejected
from order_intake.domain.schemas import LookupItemRead, LookupOrderRead, OrderLookupResponse
from order_intake.interfaces.IChallengeVerifier import IChallengeVerifier
from order_intake.interfaces.IOrderRepository import IOrderRepository
from order_intake.interfaces.IRateLimiter import IRateLimiter
from order_intake.application.order_intake import UNKNOWN_IP

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 16
MAX_TOKEN_LENGTH = 128


class OrderLookupService:
    """Customer-facing order tracking by order token. No authentication, so it is rate limited."""

    def __init__(self, order_repo: IOrderRepository, rate_limiter: IRateLimiter, verifier: IChallengeVerifier):
        self.order_repo = order_repo
        self.rate_limiter = rate_limiter
        self.verifier = verifier

    def lookup(self, payload: Any, client_ip: Optional[str]) -> OrderLookupResponse:
        ip_address = client_ip or UNKNOWN_IP
        if not self.rate_limiter.hit(
            f"lookup:{ip_address}", settings.LOOKUP_RATE_MAX, settings.LOOKUP_RATE_WINDOW_SECONDS
        ):
            logger.warning(f"⚠️ Lookup rate limit exceeded for IP: {ip_address}")
            raise OrderRejected("Too many lookups. Please wait.", 429)

        if not isinstance(payload, dict):
            raise OrderRejected("Invalid JSON")

        if self.verifier.enabled:
            captcha_token = payload.get("captcha_token")
            if not isinstance(captcha_token, str) or not captcha_token.strip():
                raise OrderRejected("Verification failed", 403)
            if not self.verifier.verify(captcha_token.strip(), client_ip):
                raise OrderRejected("Verification failed", 403)

        token = payload.get("token")
        token = token.strip() if isinstance(token, str) else ""
        if not MIN_TOKEN_LENGTH <= len(token) <= MAX_TOKEN_LENGTH:
            raise OrderRejected("Invalid token")

        order = self.order_repo.get_by_token(token)
        if order is None:
            raise OrderRejected("Order not found", 404)

        return OrderLookupResponse(
            order=LookupOrderRead.model_validate(order),
            items=[LookupItemRead.model_validate(item) for item in order.items],
        )
