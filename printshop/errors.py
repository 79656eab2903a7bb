from __future__ import annotations


class CostingError(ValueError):
    """Base for recoverable engine errors reported back to the caller."""


class ValidationError(CostingError):
    """Missing or invalid input, or an empty update set."""


class NotFoundError(CostingError):
    """A referenced job, item, product, invoice or cost entry does not exist."""


class ConfigurationError(CostingError):
    """Product setup that can never be priced, such as a cyclic component graph."""
