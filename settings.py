"""
Configuration, read from the environment (and a .env file if present).
"""

import os
from dataclasses import dataclass, field, fields

from dotenv import load_dotenv

DEFAULT_ORIGIN = 'http://localhost:3000'
DEFAULT_UPI_ID = 'shivamsharma.spg@okhdfcbank'
DEFAULT_MERCHANT_NAME = 'VASTRAA WEARS'
DEFAULT_FROM = 'no-reply@example.com'


def _flag(value):
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class Settings:
    host: str = '0.0.0.0'
    port: int = 4000
    debug: bool = False
    data_dir: str = field(default_factory=os.getcwd)
    frontend_origin: str = DEFAULT_ORIGIN
    smtp_host: str = ''
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ''
    smtp_pass: str = ''
    smtp_from: str = ''
    admin_email: str = ''
    merchant_upi_id: str = DEFAULT_UPI_ID
    merchant_name: str = DEFAULT_MERCHANT_NAME
    strict_storage: bool = False

    @property
    def orders_file(self):
        return os.path.join(self.data_dir, 'orders.json')

    @property
    def reviews_file(self):
        return os.path.join(self.data_dir, 'reviews.json')

    @property
    def mail_sender(self):
        return self.smtp_from or self.smtp_user or DEFAULT_FROM

    @classmethod
    def from_mapping(cls, mapping):
        """build from an env-style mapping (upper-case keys, string values)"""
        values = {}
        for f in fields(cls):
            raw = mapping.get(f.name.upper())
            if raw is None or raw == '':
                continue
            if f.type is bool:
                values[f.name] = _flag(raw)
            elif f.type is int:
                values[f.name] = int(raw)
            else:
                values[f.name] = raw
        return cls(**values)


def load_settings(env_file=None):
    load_dotenv(env_file)
    return Settings.from_mapping(os.environ)
