"""Pre-plan property feasibility service."""

__version__ = "0.1.0"
