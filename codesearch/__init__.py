"""Sandboxed multi-engine code search."""
