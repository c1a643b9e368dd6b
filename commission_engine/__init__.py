"""Commission calculation and report aggregation engine."""

__version__ = "1.0.0"
