"""
Business rule checks.

A notification can be genuinely signed and confirmed by PayFast yet belong
to another merchant account or another amount. These checks make sure it
is a registration fee paid to us.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from models.notification import Notification
from models.outcome import Rejection, StageOutcome

logger = logging.getLogger(__name__)

# Minor-unit rounding slack
AMOUNT_TOLERANCE = Decimal('0.01')


def parse_amount(raw: Optional[str]) -> Decimal:
    """Parse amount_gross, treating anything unusable as zero."""
    try:
        amount = Decimal((raw or '0').strip())
    except InvalidOperation:
        return Decimal('0')

    return amount if amount.is_finite() else Decimal('0')


def check_merchant(notification: Notification, expected_merchant_id: str) -> StageOutcome:
    if notification.merchant_id != expected_merchant_id:
        logger.error(
            f"ITN rejected: merchant_id mismatch (got {notification.merchant_id!r})"
        )
        return StageOutcome.fail(Rejection.MERCHANT_MISMATCH)

    return StageOutcome.success()


def check_amount(notification: Notification, expected_amount: Decimal) -> StageOutcome:
    amount = parse_amount(notification.amount_gross)

    try:
        within_tolerance = abs(amount - expected_amount) <= AMOUNT_TOLERANCE
    except ArithmeticError:
        # Exponent out of context range
        within_tolerance = False

    if not within_tolerance:
        logger.error(
            f"ITN rejected: amount mismatch (got {amount}, expected {expected_amount})"
        )
        return StageOutcome.fail(Rejection.AMOUNT_MISMATCH, f"got {amount}")

    return StageOutcome.success()


def check_business_rules(
    notification: Notification,
    expected_merchant_id: str,
    expected_amount: Decimal
) -> StageOutcome:
    """Run the merchant check, then the amount check."""
    outcome = check_merchant(notification, expected_merchant_id)
    if not outcome.ok:
        return outcome

    return check_amount(notification, expected_amount)
