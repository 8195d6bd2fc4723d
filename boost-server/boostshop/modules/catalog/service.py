"""Service catalog and pricing.

Rates come from injected ``CatalogSettings`` and may be refreshed from the
provider's price list, in which case the provider rate is multiplied by the
configured markup. Order prices are quoted once and stored on the order.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, Sequence

from boostshop.core.config import CatalogSettings, DiscountTierSettings
from boostshop.core.money import quantize

from .exceptions import InvalidInputError, UnknownServiceError
from .models import CatalogItem, ProviderRate
from .repository import RateSource, ServiceRateRepository

logger = logging.getLogger(__name__)

THOUSAND = Decimal(1000)
HUNDRED = Decimal(100)
MAX_LINK_LENGTH = 2048


class CatalogService:
    def __init__(self, settings: CatalogSettings) -> None:
        self._settings = settings
        self._items: dict[str, CatalogItem] = {
            service.key: CatalogItem(
                key=service.key,
                provider_service_id=service.provider_service_id,
                name=service.name,
                rate_per_thousand=quantize(service.rate_per_thousand),
                min_quantity=service.min_quantity,
                max_quantity=service.max_quantity,
                link_pattern=service.link_pattern,
            )
            for service in settings.services
        }
        self._tiers = sorted(
            settings.discount_tiers, key=lambda tier: tier.min_quantity, reverse=True
        )

    @property
    def currency(self) -> str:
        return self._settings.currency

    @property
    def discount_tiers(self) -> list[DiscountTierSettings]:
        return list(self._tiers)

    def list_items(self) -> list[CatalogItem]:
        return list(self._items.values())

    def get(self, key: str) -> CatalogItem:
        item = self._items.get(key)
        if item is None or not item.available:
            logger.warning("Order requested unknown or unpriced service %r", key)
            raise UnknownServiceError(key)
        return item

    def validate(self, item: CatalogItem, link: str, quantity: int) -> str:
        """Return the normalized link or raise InvalidInputError."""
        link = (link or "").strip()
        if not link or len(link) > MAX_LINK_LENGTH or not item.matches_link(link):
            raise InvalidInputError(f"Link is not a valid target for {item.name}", field="link")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidInputError("Quantity must be a whole number", field="quantity")
        if quantity < item.min_quantity or quantity > item.max_quantity:
            raise InvalidInputError(
                f"Quantity must be between {item.min_quantity} and {item.max_quantity}",
                field="quantity",
            )
        return link

    def discount_percent(self, quantity: int) -> Decimal:
        for tier in self._tiers:
            if quantity >= tier.min_quantity:
                return Decimal(tier.percent)
        return Decimal(0)

    def quote(self, item: CatalogItem, quantity: int) -> Decimal:
        if item.rate_per_thousand is None:
            raise UnknownServiceError(item.key)
        base = item.rate_per_thousand * Decimal(quantity) / THOUSAND
        discount = self.discount_percent(quantity)
        return quantize(base * (HUNDRED - discount) / HUNDRED)

    def estimate_cost(self, item: CatalogItem, quantity: int) -> Decimal:
        """What the provider charges for the order, without our discount tiers."""
        rate = item.provider_rate
        if rate is None:
            if item.rate_per_thousand is None:
                raise UnknownServiceError(item.key)
            markup = self._settings.markup
            rate = item.rate_per_thousand / markup if markup > 0 else item.rate_per_thousand
        return quantize(rate * Decimal(quantity) / THOUSAND)

    def apply_provider_rates(self, rates: Iterable[ProviderRate]) -> list[CatalogItem]:
        """Reprice configured services from the provider list; unknown ids are ignored."""
        by_id = {rate.provider_service_id: rate for rate in rates}
        now = datetime.now(timezone.utc)
        updated: list[CatalogItem] = []
        for key, item in self._items.items():
            rate = by_id.get(item.provider_service_id)
            if rate is None:
                logger.warning(
                    "Provider no longer lists service %s (%s)", item.provider_service_id, item.name
                )
                continue
            item = replace(
                item,
                provider_rate=rate.rate,
                rate_per_thousand=quantize(rate.rate * self._settings.markup),
                min_quantity=rate.min_quantity or item.min_quantity,
                max_quantity=rate.max_quantity or item.max_quantity,
                rate_updated_at=now,
            )
            self._items[key] = item
            updated.append(item)
        logger.info("Repriced %d of %d catalog services", len(updated), len(self._items))
        return updated

    async def save_rates(self, repository: ServiceRateRepository, items: Sequence[CatalogItem]) -> None:
        for item in items:
            await repository.upsert(
                service_key=item.key,
                provider_service_id=item.provider_service_id,
                name=item.name,
                provider_rate=str(item.provider_rate if item.provider_rate is not None else ""),
                rate_per_thousand=str(item.rate_per_thousand),
                min_quantity=item.min_quantity,
                max_quantity=item.max_quantity,
            )

    async def load_rates(self, repository: ServiceRateRepository) -> int:
        """Overlay previously fetched rates; returns how many were applied."""
        applied = 0
        for row in await repository.list_rates():
            item = self._items.get(row.service_key)
            if item is None or row.provider_service_id != item.provider_service_id:
                continue
            try:
                rate = Decimal(row.rate_per_thousand)
                provider_rate = Decimal(row.provider_rate) if row.provider_rate else None
            except InvalidOperation:
                logger.warning("Ignoring malformed stored rate for %s", row.service_key)
                continue
            self._items[row.service_key] = replace(
                item,
                rate_per_thousand=rate,
                provider_rate=provider_rate,
                min_quantity=row.min_quantity,
                max_quantity=row.max_quantity,
                rate_updated_at=row.updated_at,
            )
            applied += 1
        return applied

    async def refresh_from_provider(
        self,
        source: RateSource,
        repository: ServiceRateRepository | None = None,
    ) -> list[CatalogItem]:
        """Pull the provider price list, reprice and optionally persist."""
        items = self.apply_provider_rates(await source.list_services())
        if repository is not None:
            await self.save_rates(repository, items)
        return items
