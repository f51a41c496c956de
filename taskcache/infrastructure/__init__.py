"""Infrastructure layer: Redis-backed cache components and logging adapters."""
