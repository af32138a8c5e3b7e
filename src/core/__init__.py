"""
Core Module - Operating modes and platform integration.

Components:
- modes: Operating mode configuration (API, Offline)
- platform_client: Vocabulary platform HTTP client
"""

from src.core.modes import ApiConfig, OfflineConfig, OperatingMode
from src.core.platform_client import PlatformClient

__all__ = [
    # Modes
    "OperatingMode",
    "ApiConfig",
    "OfflineConfig",
    # Platform Client
    "PlatformClient",
]
