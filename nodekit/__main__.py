"""
Entry point for running nodekit as a module.

Usage: python -m nodekit [command] [options]
"""

from nodekit.cli.parser import main

if __name__ == "__main__":
    main()
