"""FastAPI routes for the Storefront: ordering, admin actions and the live feed."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    ActionResponse,
    CompleteOrderRequest,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ProductSchema,
    RestockEntrySchema,
    RestockRequest,
)
from storefront.catalogue.product import Product
from storefront.catalogue.restock import Restock
from storefront.catalogue.restock_log import restock_history
from storefront.live.hub import NotificationHub, get_hub
from storefront.live.projection import enrich_orders, project_order
from storefront.ordering.completion import CompleteOrder
from storefront.ordering.order import Order
from storefront.ordering.placement import parse_quantity, place_order


def _respond(body, status_code=200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, exclude_none=True))


def _listing(orders, detail: bool) -> list[dict]:
    if detail:
        return enrich_orders(orders, current_domain.repository_for(Product))
    return [project_order(order) for order in orders]


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(tags=["orders"])


@order_router.post("/order", response_model=PlaceOrderResponse)
async def create_order(body: PlaceOrderRequest) -> JSONResponse:
    result = place_order(body.cart(), body.customer())
    response = PlaceOrderResponse(
        success=result.success,
        message=result.message,
        order_id=result.order_id,
        order_number=result.order_number,
        order_date=result.order_date,
        total=result.total,
    )
    return _respond(response, status_code=503 if result.system_error else 200)


@order_router.get("/orders")
async def list_orders(detail: bool = True) -> list[dict]:
    orders = current_domain.repository_for(Order).all_orders()
    return _listing(orders, detail)


@order_router.get("/query-orders")
async def query_orders(
    name: str = "",
    phone: str = "",
    start: str | None = None,
    end: str | None = None,
    sort: str | None = None,
    detail: bool = True,
) -> list[dict]:
    orders = current_domain.repository_for(Order).find(name=name, phone=phone, start=start, end=end, sort=sort)
    return _listing(orders, detail)


@order_router.post("/complete-order", response_model=ActionResponse)
async def complete_order(body: CompleteOrderRequest) -> JSONResponse:
    try:
        result = current_domain.process(
            CompleteOrder(order_id=body.order_id, completed=body.completed),
            asynchronous=False,
        )
    except ObjectNotFoundError:
        return _respond(ActionResponse(success=False, message="❌ 訂單不存在"), status_code=404)

    state = "已完成" if result["completed"] else "未完成"
    return _respond(ActionResponse(success=True, message=f"✅ 訂單 #{result['order_number']} 已標記為{state}"))


# ---------------------------------------------------------------------------
# Catalogue Router
# ---------------------------------------------------------------------------
catalogue_router = APIRouter(tags=["catalogue"])


@catalogue_router.get("/products", response_model=list[ProductSchema])
async def list_products() -> list[ProductSchema]:
    products = current_domain.repository_for(Product).in_stock()
    return [
        ProductSchema(
            id=str(p.id),
            name=p.name,
            price=p.price,
            stock=p.stock,
            image=p.image,
            tags=p.tag_list,
        )
        for p in products
    ]


@catalogue_router.post("/restock", response_model=ActionResponse)
async def restock(body: RestockRequest) -> JSONResponse:
    quantity = parse_quantity(body.quantity)
    if quantity is None:
        return _respond(ActionResponse(success=False, message="❌ 補貨數量必須為正整數"), status_code=400)

    try:
        result = current_domain.process(Restock(product_id=str(body.product_id), quantity=quantity), asynchronous=False)
    except ObjectNotFoundError:
        return _respond(ActionResponse(success=False, message="❌ 商品不存在"), status_code=404)
    except ValidationError:
        return _respond(ActionResponse(success=False, message="❌ 補貨數量必須為正整數"), status_code=400)

    return _respond(ActionResponse(success=True, message=f"✅ 補貨 {quantity} 件至「{result['product_name']}」"))


@catalogue_router.get("/restock-history", response_model=list[RestockEntrySchema])
async def list_restock_history() -> list[RestockEntrySchema]:
    return [
        RestockEntrySchema(
            time=entry.restocked_at.isoformat(),
            product_id=str(entry.product_id),
            name=entry.product_name,
            quantity=entry.quantity,
        )
        for entry in restock_history()
    ]


# ---------------------------------------------------------------------------
# Live Feed Router
# ---------------------------------------------------------------------------
feed_router = APIRouter(tags=["live"])


async def event_stream(request: Request, hub: NotificationHub):
    """Subscribe, then relay frames until the client goes away."""
    subscription = hub.subscribe()
    try:
        async for frame in subscription.frames(hub.keepalive_seconds):
            if await request.is_disconnected():
                break
            yield frame
    finally:
        hub.unsubscribe(subscription)


@feed_router.get("/orders/stream")
async def stream_orders(request: Request) -> StreamingResponse:
    return StreamingResponse(
        event_stream(request, get_hub()),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
