"""
Configuration module for Registration Payment Notifications service.

Loads settings from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Merchant account the registration fee is paid into
DEFAULT_MERCHANT_ID = '33250683'

# Team registration fee in ZAR
REGISTRATION_FEE = Decimal('2650.00')


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


@dataclass
class PayFastConfig:
    """PayFast gateway configuration."""
    passphrase: Optional[str] = field(default=None, repr=False)
    sandbox: bool = False
    merchant_id: str = DEFAULT_MERCHANT_ID
    validate_url: Optional[str] = None
    validate_timeout: int = 15
    expected_amount: Decimal = REGISTRATION_FEE


@dataclass
class DatabaseConfig:
    """Record store connection configuration."""
    url: str
    service_key: Optional[str] = field(default=None, repr=False)


@dataclass
class APIConfig:
    """API server configuration."""
    host: str
    port: int
    itn_path: str


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    file: Optional[str]


@dataclass
class ServiceConfig:
    """Service-level configuration."""
    name: str
    shutdown_timeout: int


class Config:
    """
    Main configuration class that aggregates all config sections.

    Usage:
        from config import config

        print(config.payfast.sandbox)
        print(config.database.url)
    """

    def __init__(self):
        self._load_config()

    def _load_config(self):
        """Load all configuration from environment variables."""

        # PayFast configuration
        self.payfast = PayFastConfig(
            passphrase=os.getenv('PAYFAST_PASSPHRASE') or None,
            sandbox=_env_flag('PAYFAST_SANDBOX'),
            merchant_id=os.getenv('PAYFAST_MERCHANT_ID') or DEFAULT_MERCHANT_ID,
            validate_url=os.getenv('PAYFAST_VALIDATE_URL') or None,
            validate_timeout=int(os.getenv('PAYFAST_VALIDATE_TIMEOUT', '15'))
        )

        # Database configuration
        self.database = DatabaseConfig(
            url=os.getenv('DATABASE_URL', 'sqlite:///./registrations.db'),
            service_key=os.getenv('DATABASE_SERVICE_KEY') or None
        )

        # API configuration
        self.api = APIConfig(
            host=os.getenv('API_HOST', '0.0.0.0'),
            port=int(os.getenv('API_PORT', '8000')),
            itn_path=os.getenv('ITN_PATH', '/api/payfast/itn')
        )

        # Logging configuration
        self.logging = LoggingConfig(
            level=os.getenv('LOG_LEVEL', 'INFO'),
            file=os.getenv('LOG_FILE')
        )

        # Service configuration
        self.service = ServiceConfig(
            name=os.getenv('SERVICE_NAME', 'RegistrationPaymentNotifications'),
            shutdown_timeout=int(os.getenv('SHUTDOWN_TIMEOUT', '30'))
        )

    def validate(self) -> List[str]:
        """
        Validate required configuration values.

        Returns:
            List of validation error messages (empty if all valid)
        """
        errors = []

        if not self.database.url:
            errors.append("DATABASE_URL is required")

        if self.database.url.startswith('postgresql') and not self.database.service_key:
            errors.append("DATABASE_SERVICE_KEY is required for PostgreSQL")

        if not self.payfast.merchant_id:
            errors.append("PAYFAST_MERCHANT_ID must not be empty")

        if self.payfast.validate_timeout <= 0:
            errors.append("PAYFAST_VALIDATE_TIMEOUT must be positive")

        if not self.api.itn_path.startswith('/'):
            errors.append("ITN_PATH must start with '/'")

        return errors


# Global configuration instance
config = Config()
