"""Shared connection utilities."""

from .connection_manager import HTTPSessionManager, PoolUsage, PostgreSQLPoolManager

__all__ = ["HTTPSessionManager", "PoolUsage", "PostgreSQLPoolManager"]
