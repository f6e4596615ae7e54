"""
Notification and registration data models.

Represents the PayFast ITN payload and the team registration record
it confirms.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


# Fields the verification pipeline reads from every ITN
REQUIRED_FIELDS = (
    'merchant_id',
    'amount_gross',
    'payment_status',
    'm_payment_id',
    'signature',
    'pf_payment_id',
)

PAYMENT_COMPLETE = 'COMPLETE'


class RegistrationStatus(str, Enum):
    """Registration lifecycle states relevant to payment."""
    PENDING_PAYMENT = "Pending Payment"
    CONFIRMED = "Confirmed"


class Notification:
    """
    Ordered mapping of ITN field name to raw string value.

    Field order is the order the gateway sent them in, which the
    canonical parameter string depends on. A repeated field keeps the
    position of its first occurrence and the value of its last.
    """

    def __init__(self, pairs: Optional[List[Tuple[str, str]]] = None):
        self._fields: Dict[str, str] = {}
        for key, value in pairs or []:
            self._fields[key] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._fields.get(key, default)

    def items(self) -> List[Tuple[str, str]]:
        return list(self._fields.items())

    def missing_fields(self) -> List[str]:
        """Required fields absent from this notification."""
        return [name for name in REQUIRED_FIELDS if name not in self._fields]

    def __getitem__(self, key: str) -> str:
        return self._fields[key]

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return (
            f"Notification(m_payment_id={self.get('m_payment_id')!r}, "
            f"pf_payment_id={self.get('pf_payment_id')!r}, "
            f"payment_status={self.get('payment_status')!r})"
        )

    @property
    def merchant_id(self) -> Optional[str]:
        return self.get('merchant_id')

    @property
    def amount_gross(self) -> Optional[str]:
        return self.get('amount_gross')

    @property
    def payment_status(self) -> Optional[str]:
        return self.get('payment_status')

    @property
    def m_payment_id(self) -> Optional[str]:
        return self.get('m_payment_id')

    @property
    def pf_payment_id(self) -> Optional[str]:
        return self.get('pf_payment_id')

    @property
    def signature(self) -> Optional[str]:
        return self.get('signature')

    def is_complete(self) -> bool:
        """Whether the gateway reports the payment as settled."""
        return self.payment_status == PAYMENT_COMPLETE


@dataclass
class RegistrationRecord:
    """
    A team registration as stored in the record store.

    Attributes:
        id: Record identifier, sent to PayFast as m_payment_id
        team_name: Registered team name
        status: Registration status (see RegistrationStatus)
        pf_payment_id: PayFast transaction id, set once confirmed
    """

    id: str
    team_name: str
    status: str = RegistrationStatus.PENDING_PAYMENT.value
    pf_payment_id: Optional[str] = None
    manager_name: Optional[str] = None
    manager_email: Optional[str] = None
    manager_phone: Optional[str] = None
    num_players: Optional[int] = None
    home_ground: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def is_confirmed(self) -> bool:
        return self.status == RegistrationStatus.CONFIRMED.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RegistrationRecord':
        """Create record from a database row."""
        created_at = data.get('created_at')
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        return cls(
            id=str(data['id']),
            team_name=data.get('team_name') or '',
            status=data.get('status') or RegistrationStatus.PENDING_PAYMENT.value,
            pf_payment_id=data.get('pf_payment_id'),
            manager_name=data.get('manager_name'),
            manager_email=data.get('manager_email'),
            manager_phone=data.get('manager_phone'),
            num_players=data.get('num_players'),
            home_ground=data.get('home_ground'),
            notes=data.get('notes'),
            created_at=created_at or datetime.utcnow()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'team_name': self.team_name,
            'status': self.status,
            'pf_payment_id': self.pf_payment_id,
            'manager_name': self.manager_name,
            'manager_email': self.manager_email,
            'manager_phone': self.manager_phone,
            'num_players': self.num_players,
            'home_ground': self.home_ground,
            'notes': self.notes,
            'created_at': self.created_at.isoformat()
        }
