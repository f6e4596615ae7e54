"""
End-to-end pipeline tests with a stubbed PayFast and a real SQLite store.

Run with: pytest tests/test_itn_pipeline.py -v
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from models.notification import Notification
from models.outcome import Rejection

from conftest import PAYFAST_IP, StubValidationClient, itn_fields, sign


def _process(make_db, make_pipeline, notifications, validation_client=None):
    """Run notifications through a fresh pipeline; return outcomes and the team row."""
    async def _run():
        db = await make_db()
        try:
            pipeline = make_pipeline(db, validation_client)
            outcomes = [
                await pipeline.process(notification, PAYFAST_IP)
                for notification in notifications
            ]
            return outcomes, await db.get_registration('team-42')
        finally:
            await db.disconnect()

    return asyncio.run(_run())


class TestHappyPath:
    """A genuine COMPLETE ITN confirms the registration."""

    def test_confirms_registration(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn()])

        assert outcomes[0].ok
        assert outcomes[0].http_status == 200
        assert outcomes[0].body == 'OK'
        assert row['status'] == 'Confirmed'
        assert row['pf_payment_id'] == '1089250'

    def test_upstream_receives_unsalted_param_string(self, make_db, make_pipeline, signed_itn):
        stub = StubValidationClient()
        _process(make_db, make_pipeline, [signed_itn()], stub)

        assert len(stub.calls) == 1
        assert stub.calls[0].startswith('m_payment_id=team-42&pf_payment_id=1089250')
        assert 'signature' not in stub.calls[0]
        assert 'passphrase' not in stub.calls[0]

    def test_unlisted_source_still_processed(self, make_db, make_pipeline, signed_itn):
        async def _run():
            db = await make_db()
            try:
                pipeline = make_pipeline(db)
                outcome = await pipeline.process(signed_itn(), 'unknown')
                return outcome, await db.get_registration('team-42')
            finally:
                await db.disconnect()

        outcome, row = asyncio.run(_run())

        assert outcome.ok
        assert row['status'] == 'Confirmed'


class TestRejections:
    """Each stage halts the pipeline without touching the record."""

    def test_tampered_signature(self, make_db, make_pipeline):
        fields = itn_fields()
        stub = StubValidationClient()
        outcomes, row = _process(
            make_db, make_pipeline,
            [Notification(fields + [('signature', '0' * 32)])],
            stub
        )

        assert outcomes[0].rejection == Rejection.INVALID_SIGNATURE
        assert outcomes[0].http_status == 400
        assert stub.calls == []
        assert row['status'] == 'Pending Payment'
        assert row['pf_payment_id'] is None

    def test_upstream_not_valid(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(
            make_db, make_pipeline, [signed_itn()], StubValidationClient(valid=False)
        )

        assert outcomes[0].rejection == Rejection.UPSTREAM_REJECTED
        assert outcomes[0].http_status == 400
        assert row['status'] == 'Pending Payment'

    def test_merchant_mismatch(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn(merchant_id='10000100')])

        assert outcomes[0].rejection == Rejection.MERCHANT_MISMATCH
        assert row['status'] == 'Pending Payment'

    @pytest.mark.parametrize('amount', ['2649.98', '2650.02', '26.50', 'abc', ''])
    def test_amount_mismatch(self, make_db, make_pipeline, signed_itn, amount):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn(amount=amount)])

        assert outcomes[0].rejection == Rejection.AMOUNT_MISMATCH
        assert row['status'] == 'Pending Payment'

    def test_missing_reference(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn(registration_id=None)])

        assert outcomes[0].rejection == Rejection.MISSING_REFERENCE
        assert outcomes[0].http_status == 400
        assert row['status'] == 'Pending Payment'

    def test_empty_reference(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn(registration_id='')])

        assert outcomes[0].rejection == Rejection.MISSING_REFERENCE
        assert row['status'] == 'Pending Payment'


class TestIdempotence:
    """Redelivered and non-terminal ITNs."""

    def test_redelivery_is_harmless(self, make_db, make_pipeline, signed_itn):
        itn = signed_itn()
        outcomes, row = _process(make_db, make_pipeline, [itn, itn])

        assert [o.ok for o in outcomes] == [True, True]
        assert row['status'] == 'Confirmed'
        assert row['pf_payment_id'] == '1089250'

    def test_second_transaction_is_noop(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(
            make_db, make_pipeline,
            [signed_itn(pf_payment_id='1089250'), signed_itn(pf_payment_id='2000000')]
        )

        assert outcomes[1].ok
        assert outcomes[1].detail == 'already confirmed'
        assert row['pf_payment_id'] == '1089250'

    def test_pending_status_acknowledged(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn(status='PENDING')])

        assert outcomes[0].ok
        assert outcomes[0].http_status == 200
        assert row['status'] == 'Pending Payment'
        assert row['pf_payment_id'] is None

    def test_pending_without_reference_acknowledged(self, make_db, make_pipeline, signed_itn):
        outcomes, _ = _process(
            make_db, make_pipeline, [signed_itn(status='CANCELLED', registration_id=None)]
        )
        assert outcomes[0].ok

    def test_unknown_registration_acknowledged(self, make_db, make_pipeline, signed_itn):
        outcomes, row = _process(make_db, make_pipeline, [signed_itn(registration_id='team-99')])

        assert outcomes[0].ok
        assert outcomes[0].detail == 'unknown registration'
        assert row['status'] == 'Pending Payment'


class TestPersistenceFailure:
    """Store errors are server faults."""

    def test_store_error(self, make_pipeline, signed_itn):
        db = MagicMock()
        db.confirm_registration = AsyncMock(side_effect=RuntimeError("connection reset"))

        outcome = asyncio.run(make_pipeline(db).process(signed_itn(), PAYFAST_IP))

        assert outcome.rejection == Rejection.PERSISTENCE_FAILURE
        assert outcome.http_status == 500
        assert outcome.body == 'DB update failed'

    def test_store_not_called_on_rejection(self, make_pipeline):
        db = MagicMock()
        db.confirm_registration = AsyncMock()
        notification = sign(itn_fields(), passphrase='wrong')

        outcome = asyncio.run(make_pipeline(db).process(notification, PAYFAST_IP))

        assert outcome.rejection == Rejection.INVALID_SIGNATURE
        db.confirm_registration.assert_not_called()


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
