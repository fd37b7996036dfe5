"""
Aerie CLI.

Usage:
    aerie inspect app:server
    aerie inspect app:create_server --scoped
    aerie config --env-file .env
"""

from aerie import __version__

__cli_name__ = "aerie"
