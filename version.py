"""
Version information for the Job Board backend.

This file is the single source of truth for version numbers.
Both the package metadata and the board service import from here.
"""

__version__ = "0.1.0"
__version_info__ = (0, 1, 0)
