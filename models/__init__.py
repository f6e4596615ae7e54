"""Data models for Registration Payment Notifications."""

from .notification import Notification, RegistrationRecord, RegistrationStatus
from .outcome import Rejection, StageOutcome

__all__ = [
    'Notification',
    'RegistrationRecord',
    'RegistrationStatus',
    'Rejection',
    'StageOutcome'
]
