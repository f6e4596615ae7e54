"""Services module for Registration Payment Notifications."""

from .itn_pipeline import ITNPipeline
from .validation_client import ValidationClient

__all__ = [
    'ITNPipeline',
    'ValidationClient'
]
