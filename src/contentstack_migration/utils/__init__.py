"""Utility modules for contentstack-migration."""

from contentstack_migration.utils.deadline import Deadline

__all__ = ["Deadline"]
