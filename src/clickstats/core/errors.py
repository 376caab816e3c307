"""Exceptions shared by the persistence, cache and API layers."""

from __future__ import annotations


class ClickStatsError(Exception):
    """Base class for all clickstats errors."""


class NotFoundError(ClickStatsError):
    """The requested banner or click does not exist."""

    def __init__(self, resource: str, identifier: object):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' not found")


class BackingStoreError(ClickStatsError):
    """The database failed for a reason other than a missing row."""


class ValidationError(ClickStatsError):
    """Input rejected before reaching the database."""


class ConflictError(ClickStatsError):
    """The write would violate a uniqueness rule."""

    def __init__(self, resource: str, identifier: object):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} with identifier '{identifier}' already exists")
