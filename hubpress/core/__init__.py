"""
HubPress Core
=============

Core utilities and shared functionality for HubPress modules.
"""

from .config import Config, get_config_value, is_cloud_storage
from .database import Database
from .errors import ApiError, StorageError, AnalyticsError
from .logging_service import LoggingService, configure_logging

__all__ = [
    'Config', 'get_config_value', 'is_cloud_storage', 'Database',
    'ApiError', 'StorageError', 'AnalyticsError',
    'LoggingService', 'configure_logging',
]
