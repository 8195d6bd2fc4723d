"""Catalog entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(slots=True)
class CatalogItem:
    key: str
    provider_service_id: str
    name: str
    rate_per_thousand: Optional[Decimal]
    min_quantity: int
    max_quantity: int
    link_pattern: str
    provider_rate: Optional[Decimal] = None
    rate_updated_at: Optional[datetime] = None
    _link_regex: re.Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._link_regex = re.compile(self.link_pattern, re.IGNORECASE)

    @property
    def available(self) -> bool:
        return self.rate_per_thousand is not None and self.rate_per_thousand > 0

    def matches_link(self, link: str) -> bool:
        return bool(self._link_regex.match(link))


@dataclass(slots=True)
class ProviderRate:
    provider_service_id: str
    rate: Decimal
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
