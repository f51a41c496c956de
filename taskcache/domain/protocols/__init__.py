"""Protocols cache components depend on (structural typing, no inheritance)."""

from taskcache.domain.protocols.cache_protocol import CacheStoreProtocol
from taskcache.domain.protocols.logger_protocol import LoggerProtocol

__all__ = ["CacheStoreProtocol", "LoggerProtocol"]
