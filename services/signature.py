"""
ITN signature verification.

PayFast signs each ITN with an MD5 digest of the canonical parameter
string: the received fields in arrival order, minus the signature and any
empty values, URL-encoded with spaces as '+', optionally followed by the
merchant passphrase.
"""

import hashlib
import hmac
import logging
from typing import Optional
from urllib.parse import quote

from models.notification import Notification
from models.outcome import Rejection, StageOutcome

logger = logging.getLogger(__name__)

# Characters left unescaped besides ASCII letters, digits and "_.-~"
_SAFE_CHARS = "!*'()"


def pf_encode(value: str) -> str:
    """Percent-encode a value the way PayFast does, with spaces as '+'."""
    return quote(value, safe=_SAFE_CHARS).replace('%20', '+')


def build_param_string(notification: Notification) -> str:
    """Build the canonical parameter string, without passphrase."""
    return '&'.join(
        f"{key}={pf_encode(value)}"
        for key, value in notification.items()
        if key != 'signature' and value != ''
    )


def generate_signature(notification: Notification, passphrase: Optional[str] = None) -> str:
    """
    Compute the expected signature for a notification.

    Args:
        notification: Received ITN fields
        passphrase: Merchant passphrase, if one is configured

    Returns:
        Lowercase hex MD5 digest
    """
    param_string = build_param_string(notification)
    if passphrase:
        param_string += f"&passphrase={pf_encode(passphrase)}"

    return hashlib.md5(param_string.encode('utf-8')).hexdigest()


def verify_signature(notification: Notification, passphrase: Optional[str] = None) -> StageOutcome:
    """Compare the received signature with the recomputed one."""
    received = notification.signature or ''
    expected = generate_signature(notification, passphrase)

    if not hmac.compare_digest(expected.encode('ascii'), received.encode('utf-8')):
        logger.error(
            f"ITN rejected: invalid signature for {notification.m_payment_id!r}"
        )
        return StageOutcome.fail(Rejection.INVALID_SIGNATURE, "signature mismatch")

    return StageOutcome.success()
