from cli.init_db import init_db
from cli.create_user import create_user
from cli.connect_platform import connect_platform

# Export all commands for use in the app
__all__ = [
    "init_db",
    "create_user",
    "connect_platform",
]
