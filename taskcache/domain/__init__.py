"""Domain-level contracts for the cache layer."""
