import logging
from typing import Optional

import httpx

from order_intake.core.config import settings
from order_intake.domain.errors import StoreError
from order_intake.interfaces.IChallengeVerifier import IChallengeVerifier

logger = logging.getLogger(__name__)

class TurnstileVerifier(IChallengeVerifier):
    """Cloudflare Turnstile siteverify client. Disabled when no secret key is configured."""

    def __init__(self, secret_key: Optional[str] = None, verify_url: Optional[str] = None,
                 client_factory=None):
        self.secret_key = secret_key
        self.verify_url = verify_url or settings.TURNSTILE_VERIFY_URL
        self.client_factory = client_factory or (lambda: httpx.Client(timeout=5.0))

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    def verify(self, token: str, remote_ip: Optional[str] = None) -> bool:
        form = {"secret": self.secret_key, "response": token}
        if remote_ip:
            form["remoteip"] = remote_ip

        try:
            with self.client_factory() as client:
                r = client.post(self.verify_url, data=form)
                r.raise_for_status()
                outcome = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Turnstile verification call failed: {e}")
            raise StoreError("Verification service unavailable") from e

        if not outcome.get("success"):
            logger.warning(f"⚠️ Turnstile verification failed: {outcome.get('error-codes')}")
            return False
        return True
