"""Rackstore exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Catalog operations fail soft, so these are reserved for configuration,
undecodable imports, and legacy storage quota violations.
"""

from __future__ import annotations


class RackstoreError(Exception):
    """Base exception for all rackstore failures."""


class RackstoreConfigError(RackstoreError):
    """Raised for invalid runtime configuration."""


class RackstoreStoreError(RackstoreError):
    """Raised for persistence misuse that cannot fail soft."""


class RackstoreImportError(RackstoreError):
    """Raised when an import or merge payload cannot be decoded."""


class RackstoreQuotaError(RackstoreStoreError):
    """Raised when a legacy storage write exceeds its size quota."""
