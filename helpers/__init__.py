"""
ContentWell Helpers Package

- content_generator: Gemini-backed generation of campaign content, images,
  CSV column mappings and lead emails
- platforms: OAuth clients and publishers for each connected platform
- prompts: Prompt rendering for the generator
- oauth: OAuth state and PKCE helpers
- csv_leads / smartlead: the leads-to-email pipeline
"""

from .content_generator import (
    ContentGenerator,
    ContentGenerationError,
    Platform,
)

from .platforms import (
    get_platform_manager,
    get_supported_platforms,
    is_platform_supported,
)

__all__ = [
    "ContentGenerator",
    "ContentGenerationError",
    "Platform",
    "get_platform_manager",
    "get_supported_platforms",
    "is_platform_supported",
]
