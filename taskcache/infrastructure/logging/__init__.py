"""Logging adapters implementing LoggerProtocol."""

from taskcache.infrastructure.logging.console_adapter import ConsoleAdapter

__all__ = ["ConsoleAdapter"]
