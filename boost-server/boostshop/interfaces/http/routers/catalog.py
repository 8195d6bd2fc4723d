"""Public service catalog."""
from fastapi import APIRouter, Depends

from boostshop.interfaces.http.deps import get_catalog
from boostshop.modules.catalog import CatalogService
from boostshop.schemas import DiscountTierResponse, ServiceListResponse, ServiceResponse

router = APIRouter()


@router.get("", response_model=ServiceListResponse, summary="Services with prices per 1000")
async def list_services(catalog: CatalogService = Depends(get_catalog)) -> ServiceListResponse:
    return ServiceListResponse(
        currency=catalog.currency,
        services=[ServiceResponse.model_validate(item) for item in catalog.list_items() if item.available],
        discount_tiers=[
            DiscountTierResponse(min_quantity=tier.min_quantity, percent=tier.percent)
            for tier in catalog.discount_tiers
        ],
    )
