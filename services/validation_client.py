"""
PayFast Validation Client.

Confirms an ITN with PayFast's own query/validate endpoint. A matching
signature only proves the payload was signed with our passphrase; this
call proves PayFast actually issued it.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from config import config
from models.outcome import Rejection, StageOutcome

logger = logging.getLogger(__name__)

SANDBOX_HOST = 'sandbox.payfast.co.za'
PRODUCTION_HOST = 'www.payfast.co.za'
VALIDATE_PATH = '/eng/query/validate'

VALID_TOKEN = b'VALID'


def validate_url_for(sandbox: bool) -> str:
    """Validation endpoint for the selected environment."""
    host = SANDBOX_HOST if sandbox else PRODUCTION_HOST
    return f"https://{host}{VALIDATE_PATH}"


class ValidationClient:
    """
    Client for the PayFast validation endpoint.

    One request per ITN, no retries: PayFast redelivers the ITN itself
    when we answer with an error.
    """

    def __init__(
        self,
        sandbox: Optional[bool] = None,
        timeout: Optional[int] = None,
        url: Optional[str] = None
    ):
        """
        Initialize the validation client.

        Args:
            sandbox: Use the sandbox host instead of production
            timeout: Request timeout in seconds
            url: Full endpoint URL, overriding the sandbox/production choice
        """
        self.sandbox = config.payfast.sandbox if sandbox is None else sandbox
        self.timeout = timeout or config.payfast.validate_timeout
        self.url = url or config.payfast.validate_url or validate_url_for(self.sandbox)
        self._session: Optional[aiohttp.ClientSession] = None

    async def start(self) -> None:
        """Open the HTTP session."""
        logger.info(f"Starting validation client for {self.url}")
        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )

    async def stop(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def confirm(self, param_string: str) -> StageOutcome:
        """
        Post the canonical parameter string to PayFast.

        Args:
            param_string: Canonical parameter string, without passphrase

        Returns:
            Success only if PayFast answers exactly VALID
        """
        if not self._session:
            logger.error("ITN rejected: validation client not started")
            return StageOutcome.fail(Rejection.UPSTREAM_REJECTED, "session not initialized")

        headers = {'Content-Type': 'application/x-www-form-urlencoded'}

        try:
            async with self._session.post(
                self.url,
                data=param_string,
                headers=headers
            ) as response:
                body = await response.read()
                status = response.status

        except aiohttp.ClientError as e:
            logger.error(f"ITN rejected: network error contacting PayFast: {e}")
            return StageOutcome.fail(Rejection.UPSTREAM_REJECTED, str(e))
        except asyncio.TimeoutError:
            logger.error(f"ITN rejected: timeout contacting PayFast at {self.url}")
            return StageOutcome.fail(Rejection.UPSTREAM_REJECTED, "request timeout")

        if not 200 <= status < 300:
            logger.error(f"ITN rejected: PayFast validation returned HTTP {status}")
            return StageOutcome.fail(Rejection.UPSTREAM_REJECTED, f"HTTP {status}")

        if body.strip() != VALID_TOKEN:
            logger.error(f"ITN rejected: PayFast server validation failed ({body.strip()[:40]!r})")
            return StageOutcome.fail(Rejection.UPSTREAM_REJECTED, "not VALID")

        return StageOutcome.success()
