"""
Configuration and environment setup.

Backend credentials, session file location and logging are all read from
the environment or a local .env file.
"""

from .supabase_config import (
    Settings,
    describe_telemetry,
    get_settings,
    get_supabase_client,
    get_supabase_config,
    reset_settings,
    setup_logging,
)

__all__ = [
    'Settings',
    'describe_telemetry',
    'get_settings',
    'get_supabase_client',
    'get_supabase_config',
    'reset_settings',
    'setup_logging',
]
