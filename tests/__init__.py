"""Test suite for the taskcache package.

- unit/: Pure logic (validation, config, keys, metrics, models, logging)
- integration/: Components against an in-memory Redis (fakeredis with Lua)
"""
