"""
Command-line interface for nodekit.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
