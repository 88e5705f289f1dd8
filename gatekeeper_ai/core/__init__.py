"""Process-wide configuration and logging setup."""
