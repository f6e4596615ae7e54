"""API module for Registration Payment Notifications."""

from .itn_api import create_app, ITNAPI

__all__ = ['create_app', 'ITNAPI']
