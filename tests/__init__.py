"""
dealerdb Test Suite.

This package contains:
- unit/: Component tests (SQLite files, mocked PyMySQL driver)
- integration/: Command line flows against a SQLite file
"""
