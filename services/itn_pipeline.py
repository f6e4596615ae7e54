"""
ITN Verification Pipeline.

Runs a parsed ITN through each verification stage in order and applies
the payment only when every stage passes:

    source check (advisory) -> signature -> PayFast validation
        -> merchant and amount -> state transition
"""

import logging
from decimal import Decimal
from typing import Optional

from config import config
from database.db import Database
from models.notification import Notification
from models.outcome import StageOutcome
from services.business_rules import check_business_rules
from services.ingress import check_source
from services.signature import build_param_string, verify_signature
from services.state_transition import apply_payment
from services.validation_client import ValidationClient

logger = logging.getLogger(__name__)


class ITNPipeline:
    """
    Composes the verification stages.

    Holds no per-request state, so one instance serves concurrent ITNs.
    """

    def __init__(
        self,
        db: Database,
        validation_client: ValidationClient,
        passphrase: Optional[str] = None,
        merchant_id: Optional[str] = None,
        expected_amount: Optional[Decimal] = None
    ):
        """
        Initialize the pipeline.

        Args:
            db: Record store holding registrations
            validation_client: Started PayFast validation client
            passphrase: Signature passphrase. Uses config if not provided.
            merchant_id: Expected merchant id. Uses config if not provided.
            expected_amount: Registration fee. Uses config if not provided.
        """
        self.db = db
        self.validation_client = validation_client
        self.passphrase = passphrase if passphrase is not None else config.payfast.passphrase
        self.merchant_id = merchant_id or config.payfast.merchant_id
        self.expected_amount = (
            expected_amount if expected_amount is not None
            else config.payfast.expected_amount
        )

    async def process(self, notification: Notification, source_ip: str) -> StageOutcome:
        """
        Verify an ITN and apply it.

        Args:
            notification: Parsed ITN fields
            source_ip: Best-effort client address

        Returns:
            Outcome of the first failing stage, or of the state transition
        """
        check_source(source_ip)

        missing = notification.missing_fields()
        if missing:
            logger.debug(f"ITN missing fields: {', '.join(missing)}")

        outcome = verify_signature(notification, self.passphrase)
        if not outcome.ok:
            return outcome

        outcome = await self.validation_client.confirm(build_param_string(notification))
        if not outcome.ok:
            return outcome

        outcome = check_business_rules(notification, self.merchant_id, self.expected_amount)
        if not outcome.ok:
            return outcome

        return await apply_payment(self.db, notification)
