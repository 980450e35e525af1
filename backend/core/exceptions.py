"""Domain exceptions raised by the store and dataset layers.

They derive from builtin exception types so callers outside the API layer
can catch them generically; the routers map them onto HTTP status codes.
"""


class NotFoundError(LookupError):
    """Entity does not exist or is not visible to the requesting owner."""


class PersistenceError(RuntimeError):
    """The underlying database write or read failed."""


class FormulaRejectedError(ValueError):
    """A formula failed validation and was not persisted."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid formula: {'; '.join(errors)}")
