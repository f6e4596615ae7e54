"""
Shared fixtures for the ITN handler tests.

Coroutines are driven with asyncio.run inside each test, so fixtures hand
out async factories rather than live connections.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

import pytest

from database.db import Database
from models.notification import Notification
from models.outcome import Rejection, StageOutcome
from services.itn_pipeline import ITNPipeline
from services.signature import generate_signature

PASSPHRASE = 'spring league 2025'
MERCHANT_ID = '33250683'
FEE = Decimal('2650.00')
PAYFAST_IP = '197.97.145.150'


class StubValidationClient:
    """Stands in for ValidationClient; records what it was asked to confirm."""

    def __init__(self, valid: bool = True, sandbox: bool = True):
        self.valid = valid
        self.sandbox = sandbox
        self.calls: List[str] = []

    async def confirm(self, param_string: str) -> StageOutcome:
        self.calls.append(param_string)
        if self.valid:
            return StageOutcome.success()
        return StageOutcome.fail(Rejection.UPSTREAM_REJECTED, "not VALID")


def itn_fields(
    registration_id: Optional[str] = 'team-42',
    pf_payment_id: str = '1089250',
    status: str = 'COMPLETE',
    amount: str = '2650.00',
    merchant_id: str = MERCHANT_ID
) -> List[Tuple[str, str]]:
    """Unsigned ITN fields in the order PayFast sends them."""
    fields = []
    if registration_id is not None:
        fields.append(('m_payment_id', registration_id))
    fields += [
        ('pf_payment_id', pf_payment_id),
        ('payment_status', status),
        ('item_name', 'Team Registration'),
        ('item_description', ''),
        ('amount_gross', amount),
        ('amount_fee', '-60.95'),
        ('amount_net', '2589.05'),
        ('name_first', 'Thabo'),
        ('name_last', 'Mokoena'),
        ('email_address', 'captain@example.com'),
        ('merchant_id', merchant_id),
    ]
    return fields


def sign(fields: List[Tuple[str, str]], passphrase: Optional[str] = PASSPHRASE) -> Notification:
    """Append a valid signature to the fields."""
    signature = generate_signature(Notification(fields), passphrase)
    return Notification(fields + [('signature', signature)])


@pytest.fixture
def signed_itn():
    """Factory for correctly signed ITNs."""
    def _build(**overrides) -> Notification:
        return sign(itn_fields(**overrides))
    return _build


@pytest.fixture
def make_db():
    """Factory for a connected in-memory database with one pending team."""
    async def _make(with_team: bool = True) -> Database:
        db = Database('sqlite:///:memory:')
        await db.connect()
        await db.init_schema()
        if with_team:
            await db.create_registration(
                team_name='Soweto Strikers',
                manager_name='Thabo Mokoena',
                registration_id='team-42'
            )
        return db
    return _make


@pytest.fixture
def make_pipeline():
    """Factory for a pipeline wired to test doubles."""
    def _make(db, validation_client=None) -> ITNPipeline:
        return ITNPipeline(
            db=db,
            validation_client=validation_client or StubValidationClient(),
            passphrase=PASSPHRASE,
            merchant_id=MERCHANT_ID,
            expected_amount=FEE
        )
    return _make
