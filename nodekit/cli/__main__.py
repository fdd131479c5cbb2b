"""
Entry point for running the nodekit CLI as a module.

Usage: python -m nodekit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
