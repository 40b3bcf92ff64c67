# printdesk/api/v1/api.py

from fastapi import APIRouter

from printdesk.api.v1.endpoints import agents_api, earnings_api, orders_api, pricing_api, system

api_router = APIRouter()

api_router.include_router(system.router, tags=["System"])
api_router.include_router(orders_api.router, prefix="/orders", tags=["Orders"])
# /agents/earnings must match before /agents/{agent_id}
api_router.include_router(earnings_api.router, prefix="/agents", tags=["Earnings"])
api_router.include_router(agents_api.router, prefix="/agents", tags=["Agents"])
api_router.include_router(pricing_api.router, prefix="/delivery-pricing", tags=["Delivery Pricing"])
