from fastapi import APIRouter

from boostshop.interfaces.http.routers import admin, auth, catalog, orders, wallet


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(auth.router, prefix="/auth", tags=["auth"])
    router.include_router(catalog.router, prefix="/services", tags=["catalog"])
    router.include_router(orders.router, prefix="/orders", tags=["orders"])
    router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
    router.include_router(admin.router, prefix="/admin", tags=["admin"])
    return router


__all__ = [
    "create_api_router",
]
