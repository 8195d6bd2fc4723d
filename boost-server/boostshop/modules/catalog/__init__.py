"""Service catalog exports"""

from .exceptions import CatalogError, InvalidInputError, UnknownServiceError
from .models import CatalogItem, ProviderRate
from .service import CatalogService

__all__ = [
    "CatalogError",
    "CatalogItem",
    "CatalogService",
    "InvalidInputError",
    "ProviderRate",
    "UnknownServiceError",
]
