"""
Platform Managers

This module provides platform-specific managers for social media operations
like posting, authorization, and platform-specific features.
"""

from .base import (
    BasePlatformManager,
    ConfigurationError,
    ContentValidationError,
    NotConnectedError,
    PermissionDeniedError,
    PlatformError,
    ProviderProfile,
    ReauthRequiredError,
    TokenExpiredError,
)
from .linkedin import LinkedInManager
from .twitter import TwitterManager
from .facebook import FacebookManager
from .instagram import InstagramManager
from .google_drive import GoogleDriveManager

from helpers.content_generator import Platform

# Registry of platform managers
PLATFORM_MANAGERS = {
    Platform.LINKEDIN: LinkedInManager,
    Platform.X: TwitterManager,
    Platform.FACEBOOK: FacebookManager,
    Platform.INSTAGRAM: InstagramManager,
    Platform.GOOGLE_DRIVE: GoogleDriveManager,
}


def get_platform_manager(platform) -> BasePlatformManager:
    """Get the manager for a Platform or any accepted platform name."""
    if not isinstance(platform, Platform):
        platform = Platform.from_name(platform)
    if platform not in PLATFORM_MANAGERS:
        raise ValueError(f"No manager available for platform: {platform.value}")

    return PLATFORM_MANAGERS[platform]()


def get_supported_platforms() -> list[Platform]:
    """Get list of platforms with available managers."""
    return list(PLATFORM_MANAGERS.keys())


def is_platform_supported(platform) -> bool:
    """Check if a platform has an available manager."""
    try:
        if not isinstance(platform, Platform):
            platform = Platform.from_name(platform)
    except ValueError:
        return False
    return platform in PLATFORM_MANAGERS


__all__ = [
    "BasePlatformManager",
    "ConfigurationError",
    "ContentValidationError",
    "NotConnectedError",
    "PermissionDeniedError",
    "PlatformError",
    "ProviderProfile",
    "ReauthRequiredError",
    "TokenExpiredError",
    "LinkedInManager",
    "TwitterManager",
    "FacebookManager",
    "InstagramManager",
    "GoogleDriveManager",
    "PLATFORM_MANAGERS",
    "get_platform_manager",
    "get_supported_platforms",
    "is_platform_supported",
]
