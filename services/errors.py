# shared error types raised by the engines and service managers

from __future__ import annotations


class DashboardError(Exception):
    # base class so pages and the api can catch every domain failure at once
    pass


class AuthenticationError(DashboardError):
    # missing or invalid api key, or a bad email/password pair
    pass


class ValidationError(DashboardError):
    # malformed or incomplete input, nothing has been written
    pass


class NotFoundError(DashboardError):
    # referenced account, child, incident or export does not exist
    pass


class ComputationError(DashboardError):
    # statistics input contained a record the engine cannot trust
    pass


class StorageError(DashboardError):
    # the database rejected a write, the previous state is still stored
    pass
