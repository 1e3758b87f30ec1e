"""
Ledgerdash revenue aggregation engine.

Keeps per-month revenue aggregates of a billing dashboard in step with
invoice lifecycle events and serves the rolling-year view for reporting:
- Invoice events and the in-process event bus
- Change classification and mutation handlers for aggregates
- Rolling-year template, merge and statistics
"""

__version__ = "1.0.0"
__author__ = "Ledgerdash Team"


def get_version() -> str:
    """Get package version."""
    return __version__


__all__ = ["__version__", "get_version"]
