"""
Test fixtures for nodekit.

Builders for fake Node.js distributions and release index payloads.
"""
