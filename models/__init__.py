"""
Database models package.

This package contains all the database models for the application.
All models are imported here to provide a clean API for importing elsewhere.
"""

from .user import User
from .campaign import Campaign
from .generated_content import GeneratedContent
from .social_credential import SocialCredential
from .contact import Contact, GeneratedEmail

# Define __all__ to explicitly state what's available when importing from models
__all__ = [
    "User",
    "Campaign",
    "GeneratedContent",
    "SocialCredential",
    "Contact",
    "GeneratedEmail",
]
