"""Version information for contentstack-migration."""

__version__ = "0.1.0"
