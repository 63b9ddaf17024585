"""Exception hierarchy shared by the engine and its front ends."""

from __future__ import annotations


class DbdrillError(Exception):
    """Base class for every error the engine reports to an operator."""


class ConfigurationError(DbdrillError):
    """The resources document is malformed or violates a catalog invariant."""

    def __init__(self, message: str, resource_id: str | None = None, link_id: str | None = None) -> None:
        self.resource_id = resource_id
        self.link_id = link_id
        prefix = ""
        if resource_id is not None and link_id is not None:
            prefix = f"error validating {resource_id}.links.{link_id}: "
        elif resource_id is not None:
            prefix = f"error validating {resource_id}: "
        super().__init__(prefix + message)


class ParameterError(DbdrillError):
    """A value could not be converted to the type a search parameter expects."""


class CoercionError(ParameterError):
    """A text or JSON value does not parse as, or fit in, the target type."""


class CardinalityError(ParameterError):
    """A JSONPath produced a number of nodes the target parameter can't take."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"expected {expected} result, got {actual}")


class LinkError(DbdrillError):
    """A link could not be resolved against the selected row."""


class DatabaseError(DbdrillError):
    """The database rejected a query or the connection failed."""


class InvalidTransition(DbdrillError):
    """A navigation action was requested from a screen that doesn't offer it."""
