"""Shared cache, rate-limiting and session layer for the task manager services.

Entry point:
    from taskcache.core.container import create_cache_service
"""
