"""
HTTP ingestion endpoint for test-coverage metrics.

Accepts coverage-report submissions guarded by a shared secret and
persists each one as a timestamped row in a remote libSQL (Turso) database.
"""

__version__ = "1.0.0"
