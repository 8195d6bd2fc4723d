"""Catalog and order-input exceptions."""


class CatalogError(Exception):
    """Base class for catalog errors."""


class UnknownServiceError(CatalogError):
    """The requested service is not offered (configuration gap)."""


class InvalidInputError(CatalogError):
    """The link or quantity does not fit the service; user-correctable."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)
