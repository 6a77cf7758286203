"""
Configuration module for the live monitor.
"""
from .settings import (
    Settings,
    get_settings,
    MILLION_PLUS_LANGUAGES,
    ONE_HUNDRED_THOUSAND_PLUS_LANGUAGES,
)

__all__ = [
    'Settings',
    'get_settings',
    'MILLION_PLUS_LANGUAGES',
    'ONE_HUNDRED_THOUSAND_PLUS_LANGUAGES',
]
