from fastapi import APIRouter, Depends

from context_manager.context import build_request_context

# routers
from modules.shipment.shipment_controller import shipment_router
from modules.rate_card.rate_card_controller import rate_card_router
from modules.shipping_partner.shipping_partner_controller import (
    shipping_partner_router,
)


# master router for every route that needs a request scoped db session
CommonRouter = APIRouter(
    prefix="/api/v1",
    dependencies=[Depends(build_request_context)],
)


# add all the routes to the master router
CommonRouter.include_router(shipment_router)
CommonRouter.include_router(rate_card_router)
CommonRouter.include_router(shipping_partner_router)
