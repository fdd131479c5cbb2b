"""
Command implementations for the nodekit CLI.

Each module exposes ``run(args) -> int``.
"""
