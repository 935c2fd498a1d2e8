"""Catalog storage layer.

This package persists the catalog document through interchangeable
backends and exposes the cached, notifying SDK used by callers.
"""
