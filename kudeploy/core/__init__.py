"""
Core building blocks for kudeploy.

This package contains configuration, run context, subprocess handling,
the exception taxonomy, lifecycle events and the shared schema types.
"""

__all__ = []
