"""Database module for Registration Payment Notifications."""

from .db import Database, get_db, close_db

__all__ = ['Database', 'get_db', 'close_db']
