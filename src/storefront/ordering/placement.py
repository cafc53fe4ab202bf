"""Order placement: command, handler, and the `place_order` entry point.

Placing an order is one unit of work:

1. validate every cart line against current stock, collecting all problems;
2. take the stock for every line;
3. draw the next daily order number;
4. record the order in the ledger.

The `OrderPlaced` event raised in step 4 is picked up by the live feed after
the unit of work commits, so admins only ever see committed orders.

Concurrent placements are serialized by `_placement_lock`, held around the
whole command (handler, commit and event dispatch). Within one placement a
failure after stock was taken gives the stock and the order number back
before the error propagates; the unit of work is rolled back as well.
"""

import json
import threading
from collections.abc import Mapping
from dataclasses import dataclass

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.inventory import InventoryStore
from storefront.catalogue.product import Product, StockConflict
from storefront.domain import logger, storefront
from storefront.ordering.order import Order
from storefront.ordering.sequence import DailyCounter
from storefront.utils.money import format_amount

EMPTY_CART_MESSAGE = "購物車是空的，請至少選擇一項商品"
SYSTEM_ERROR_MESSAGE = "❌ 系統忙碌中，請稍後再試"

# One retry when a decrement loses to another order after validation passed.
_MAX_ATTEMPTS = 2

_placement_lock = threading.Lock()


class CartRejected(ValidationError):
    """The cart cannot be accepted as submitted; nothing was changed."""

    def __init__(self, reasons):
        self.reasons = list(reasons)
        super().__init__({"items": self.reasons})

    @property
    def message(self) -> str:
        return "\n".join(self.reasons)


@dataclass(frozen=True)
class ValidatedLine:
    product_id: str
    name: str
    price: float
    quantity: int


@dataclass(frozen=True)
class PlacementResult:
    """Outcome of one `place_order` call."""

    success: bool
    message: str
    order_id: str | None = None
    order_number: int | None = None
    order_date: str | None = None
    total: float | None = None
    system_error: bool = False

    @classmethod
    def placed(cls, order_id, order_number, order_date, total):
        return cls(
            success=True,
            message=f"✅ 訂單完成，總金額：{format_amount(total)} 元",
            order_id=order_id,
            order_number=order_number,
            order_date=order_date,
            total=total,
        )

    @classmethod
    def rejected(cls, reasons):
        return cls(success=False, message="\n".join(reasons))

    @classmethod
    def failed(cls):
        return cls(success=False, message=SYSTEM_ERROR_MESSAGE, system_error=True)


def parse_quantity(raw) -> int | None:
    """Positive integer quantity, or None when `raw` is not one.

    Accepts ints, integral floats (2.0) and digit strings ("2"); rejects
    booleans, fractions, zero and negatives.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            return None
        value = int(raw)
    elif isinstance(raw, str):
        try:
            value = int(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return value if value > 0 else None


def validate_cart(inventory: InventoryStore, cart) -> tuple[list[ValidatedLine], float]:
    """Check every cart line and price the cart.

    Raises `CartRejected` carrying one message per failing line. Lines that
    repeat a product are checked against what the earlier lines left over.
    """
    if not cart:
        raise CartRejected([EMPTY_CART_MESSAGE])

    reasons = []
    validated = []
    remaining = {}

    for line in cart:
        if isinstance(line, Mapping):
            product_id, raw_quantity = line.get("product_id"), line.get("quantity")
        else:
            product_id, raw_quantity = None, None

        product = inventory.lookup(product_id)
        if product is None:
            reasons.append(f"商品 {product_id if product_id not in (None, '') else '(未指定)'} 不存在")
            continue

        quantity = parse_quantity(raw_quantity)
        if quantity is None:
            reasons.append(f"{product.name} 購買數量必須為正整數")
            continue

        left = remaining.get(product.id, product.stock or 0)
        if left == 0:
            reasons.append(f"{product.name} 已售完")
            continue
        if left < quantity:
            reasons.append(f"{product.name} 庫存不足（剩 {left} 件）")
            continue

        remaining[product.id] = left - quantity
        validated.append(ValidatedLine(product_id=product.id, name=product.name, price=product.price, quantity=quantity))

    if reasons:
        raise CartRejected(reasons)

    total = round(sum(line.price * line.quantity for line in validated), 2)
    return validated, total


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_name = String(max_length=100)
    phone = String(max_length=50)
    address = String(max_length=255)
    pickup_date = String(max_length=32)
    note = Text()
    items = Text(required=True)  # JSON: list of {"product_id", "quantity"}


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart = json.loads(command.items) if isinstance(command.items, str) else command.items

        inventory = current_domain.repository_for(Product)
        counter = current_domain.repository_for(DailyCounter)
        ledger = current_domain.repository_for(Order)

        lines, total = validate_cart(inventory, cart)

        taken = []
        issued = None
        try:
            for line in lines:
                if not inventory.try_decrement(line.product_id, line.quantity):
                    product = inventory.lookup(line.product_id)
                    raise StockConflict(line.product_id, line.quantity, product.stock if product else 0)
                taken.append(line)

            issued = counter.next()
            order_date, order_number = issued

            order = Order.place(
                order_date=order_date,
                order_number=order_number,
                customer={
                    "name": command.customer_name,
                    "phone": command.phone,
                    "address": command.address,
                    "pickup_date": command.pickup_date,
                    "note": command.note,
                },
                lines=[(line.product_id, line.quantity) for line in lines],
                total=total,
            )
            order_id = ledger.append(order)
        except Exception:
            for line in taken:
                inventory.restore(line.product_id, line.quantity)
            if issued is not None:
                counter.release(*issued)
            raise

        return {
            "order_id": order_id,
            "order_number": order_number,
            "order_date": order_date,
            "total": total,
        }


def place_order(cart, customer=None) -> PlacementResult:
    """Place an order for `cart` on behalf of `customer`.

    Args:
        cart: Sequence of mappings with `product_id` and `quantity`.
        customer: Mapping with any of name, phone, address, pickup_date, note.

    Validation problems come back as a rejected result and leave stock
    untouched; infrastructure faults come back as a generic failure and are
    logged.
    """
    if not cart:
        logger.info("Cart rejected", reasons=[EMPTY_CART_MESSAGE])
        return PlacementResult.rejected([EMPTY_CART_MESSAGE])

    customer = customer or {}
    try:
        command = PlaceOrder(
            customer_name=customer.get("name"),
            phone=customer.get("phone"),
            address=customer.get("address"),
            pickup_date=customer.get("pickup_date"),
            note=customer.get("note"),
            items=json.dumps(list(cart), ensure_ascii=False, default=str),
        )
    except ValidationError as exc:
        reasons = [f"{field}: {message}" for field, messages in exc.messages.items() for message in messages]
        logger.info("Cart rejected", reasons=reasons)
        return PlacementResult.rejected(reasons)

    for attempt in range(1, _MAX_ATTEMPTS + 1):
        try:
            with _placement_lock:
                placed = current_domain.process(command, asynchronous=False)
        except CartRejected as exc:
            logger.info("Cart rejected", reasons=exc.reasons)
            return PlacementResult.rejected(exc.reasons)
        except StockConflict as exc:
            logger.warning(
                "Stock taken by a concurrent order, retrying",
                product_id=str(exc.product_id),
                requested=exc.requested,
                available=exc.available,
                attempt=attempt,
            )
            continue
        except Exception:
            logger.exception("Order placement failed")
            return PlacementResult.failed()

        logger.info(
            "Order placed",
            order_id=placed["order_id"],
            order_number=placed["order_number"],
            order_date=placed["order_date"],
            total=placed["total"],
        )
        return PlacementResult.placed(**placed)

    return PlacementResult.failed()
