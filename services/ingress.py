"""
ITN ingress helpers.

Parses the form-encoded ITN body and works out where the request came
from. The source address check is advisory only: edge proxies may mask
or rewrite the client address, so a miss is logged and never rejected.
"""

import ipaddress
import logging
from typing import Mapping, Optional
from urllib.parse import parse_qsl

from models.notification import Notification

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE = 'unknown'

# PayFast published ITN source ranges, inclusive
PAYFAST_IP_RANGES = (
    # Production
    ('197.97.145.145', '197.97.145.158'),
    ('41.74.179.193', '41.74.179.222'),
    # Sandbox
    ('144.126.193.139', '144.126.193.139'),
)

_PAYFAST_RANGES = tuple(
    (ipaddress.ip_address(start), ipaddress.ip_address(end))
    for start, end in PAYFAST_IP_RANGES
)


def parse_notification(body: str) -> Notification:
    """
    Parse an application/x-www-form-urlencoded ITN body.

    Values are kept as strings exactly as decoded; blank values are
    preserved so the signature stage can decide what to skip.
    """
    return Notification(parse_qsl(body, keep_blank_values=True))


def extract_source_ip(headers: Mapping[str, str]) -> str:
    """
    Best-effort client address from proxy headers.

    Checks the first X-Forwarded-For entry, then CF-Connecting-IP.
    """
    forwarded = headers.get('X-Forwarded-For')
    if forwarded:
        first = forwarded.split(',')[0].strip()
        if first:
            return first

    connecting = (headers.get('CF-Connecting-IP') or '').strip()
    return connecting or UNKNOWN_SOURCE


def is_payfast_address(address: Optional[str]) -> bool:
    """Check an address against the published PayFast ranges."""
    if not address or address == UNKNOWN_SOURCE:
        return False

    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False

    return any(
        start.version == ip.version and start <= ip <= end
        for start, end in _PAYFAST_RANGES
    )


def check_source(address: str) -> bool:
    """Log a warning for unlisted sources. Never blocks the request."""
    if is_payfast_address(address):
        return True

    logger.warning(f"ITN from unlisted source IP {address}, continuing")
    return False
