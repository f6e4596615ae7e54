#!/usr/bin/env python3
"""
Example: Send a signed ITN to a running service.

Builds an ITN the way PayFast would, signs it with the configured
passphrase and posts it to the ITN endpoint. The service still confirms
it with PayFast, so point PAYFAST_VALIDATE_URL at a stub that answers
VALID when testing locally.

Usage:
    python simulate_itn.py <registration_id>
    python simulate_itn.py <registration_id> --status PENDING --amount 2650.00
"""

import argparse
import asyncio
import os
import secrets
import sys

import aiohttp

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import config
from models.notification import Notification
from services.signature import generate_signature


def build_itn(
    registration_id: str,
    amount: str,
    status: str,
    pf_payment_id: str
) -> Notification:
    """Build and sign an ITN in PayFast's field order."""
    fields = [
        ('m_payment_id', registration_id),
        ('pf_payment_id', pf_payment_id),
        ('payment_status', status),
        ('item_name', 'Team Registration'),
        ('item_description', ''),
        ('amount_gross', amount),
        ('amount_fee', '-60.95'),
        ('amount_net', '2589.05'),
        ('name_first', 'Test'),
        ('name_last', 'Manager'),
        ('email_address', 'manager@example.com'),
        ('merchant_id', config.payfast.merchant_id),
    ]
    unsigned = Notification(fields)
    signature = generate_signature(unsigned, config.payfast.passphrase)
    return Notification(fields + [('signature', signature)])


async def send_itn(api_url: str, notification: Notification, source_ip: str) -> None:
    """Post the ITN and print the response."""
    async with aiohttp.ClientSession() as session:
        async with session.post(
            f"{api_url}{config.api.itn_path}",
            data=notification.items(),
            headers={'X-Forwarded-For': source_ip}
        ) as response:
            body = await response.text()
            print(f"Response: {response.status} {body}")


async def main():
    parser = argparse.ArgumentParser(
        description='Send a signed test ITN'
    )
    parser.add_argument(
        'registration_id',
        help='Registration id (m_payment_id)'
    )
    parser.add_argument(
        '--amount',
        default=str(config.payfast.expected_amount),
        help='amount_gross (default: registration fee)'
    )
    parser.add_argument(
        '--status',
        default='COMPLETE',
        help='payment_status (default: COMPLETE)'
    )
    parser.add_argument(
        '--pf-payment-id',
        default=None,
        help='PayFast transaction id (default: random)'
    )
    parser.add_argument(
        '--source-ip',
        default='144.126.193.139',
        help='X-Forwarded-For address (default: PayFast sandbox)'
    )
    parser.add_argument(
        '--api-url',
        default='http://localhost:8000',
        help='API server URL (default: http://localhost:8000)'
    )

    args = parser.parse_args()

    pf_payment_id = args.pf_payment_id or str(secrets.randbelow(10 ** 7))
    notification = build_itn(
        registration_id=args.registration_id,
        amount=args.amount,
        status=args.status,
        pf_payment_id=pf_payment_id
    )

    print(f"Sending ITN for {args.registration_id}")
    print(f"  Status: {args.status}")
    print(f"  Amount: {args.amount}")
    print(f"  PF payment id: {pf_payment_id}")
    print()

    try:
        await send_itn(args.api_url, notification, args.source_ip)
    except aiohttp.ClientError as e:
        print(f"\n❌ Connection error: {e}")
        print("   Make sure the API server is running.")
        sys.exit(1)


if __name__ == '__main__':
    asyncio.run(main())
