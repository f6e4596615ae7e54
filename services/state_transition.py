"""
Registration state transition.

The only stage that writes. It runs last, after every check has passed,
so an ITN rejected or aborted earlier never touches the record store.
"""

import logging

from database.db import Database
from models.notification import Notification, RegistrationRecord
from models.outcome import Rejection, StageOutcome

logger = logging.getLogger(__name__)


async def apply_payment(db: Database, notification: Notification) -> StageOutcome:
    """
    Confirm the registration referenced by a verified ITN.

    Non-COMPLETE statuses are acknowledged without a write so PayFast
    stops redelivering them. Writing the same status and pf_payment_id
    twice is harmless, which keeps redelivered ITNs safe.

    Args:
        db: Record store
        notification: ITN that passed every verification stage

    Returns:
        StageOutcome; PERSISTENCE_FAILURE when the store errors
    """
    if not notification.is_complete():
        logger.info(
            f"ITN received with status: {notification.payment_status} "
            f"for {notification.m_payment_id}"
        )
        return StageOutcome.success("acknowledged")

    registration_id = notification.m_payment_id
    if not registration_id:
        logger.error("ITN rejected: missing m_payment_id")
        return StageOutcome.fail(Rejection.MISSING_REFERENCE)

    pf_payment_id = notification.pf_payment_id

    try:
        matched = await db.confirm_registration(registration_id, pf_payment_id)
        existing = None if matched else await db.get_registration(registration_id)
    except Exception as e:
        logger.error(
            f"ITN: database update failed for {registration_id}: {e}",
            exc_info=True
        )
        return StageOutcome.fail(Rejection.PERSISTENCE_FAILURE, str(e))

    if matched:
        logger.info(f"Payment confirmed for team {registration_id} (PF: {pf_payment_id})")
        return StageOutcome.success("confirmed")

    if existing is None:
        logger.warning(f"ITN for unknown registration {registration_id} (PF: {pf_payment_id})")
        return StageOutcome.success("unknown registration")

    record = RegistrationRecord.from_dict(existing)
    logger.info(
        f"Registration {registration_id} already confirmed by PF {record.pf_payment_id}, "
        f"ignoring PF {pf_payment_id}"
    )
    return StageOutcome.success("already confirmed")
