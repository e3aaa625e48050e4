"""Python API — :class:`AdminDashboard` is the single entry point that wires
the analytics pipeline, layout engine and controller together.
"""

from shopdash.api.facade import AdminDashboard

__all__ = ["AdminDashboard"]
