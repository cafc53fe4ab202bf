"""Order ledger: the Order repository with the admin's listing filters."""

from datetime import date, datetime

from storefront.domain import storefront
from storefront.ordering.order import Order

SORT_BY_AMOUNT = "amount"
SORT_BY_DATE = "date"


def _as_date(value):
    """Parse a pickup/filter date; anything unparseable yields None."""
    if not value:
        return None
    text = str(value).strip()
    for candidate in (text[:10], text):
        try:
            return date.fromisoformat(candidate)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


@storefront.repository(part_of=Order)
class OrderLedger:
    def append(self, order: Order) -> str:
        self.add(order)
        return str(order.id)

    def all_orders(self) -> list[Order]:
        """Every order, in the order they were placed."""
        orders = self._dao.query.all().items
        return sorted(orders, key=lambda o: (o.created_at or datetime.min, o.order_date, o.order_number))

    def on_date(self, order_date) -> list[Order]:
        return [o for o in self.all_orders() if o.order_date == order_date]

    def find(self, name="", phone="", start=None, end=None, sort=None) -> list[Order]:
        """Admin search over the ledger.

        `name` and `phone` match as substrings; `start`/`end` bound the pickup
        date inclusively and drop orders whose pickup date cannot be read;
        `sort` is "amount" (largest total first) or "date" (latest pickup first).
        """
        start_date = _as_date(start)
        end_date = _as_date(end)

        result = []
        for order in self.all_orders():
            customer = order.customer
            if name and name not in ((customer.name if customer else None) or ""):
                continue
            if phone and phone not in ((customer.phone if customer else None) or ""):
                continue

            if start_date or end_date:
                pickup = _as_date(customer.pickup_date if customer else None)
                if pickup is None:
                    continue
                if start_date and pickup < start_date:
                    continue
                if end_date and pickup > end_date:
                    continue

            result.append(order)

        if sort == SORT_BY_AMOUNT:
            result.sort(key=lambda o: o.total, reverse=True)
        elif sort == SORT_BY_DATE:
            result.sort(key=lambda o: _as_date(o.customer.pickup_date if o.customer else None) or date.min, reverse=True)

        return result

    def set_completed(self, order_id, completed=True) -> Order:
        order = self.get(order_id)
        order.set_completed(completed)
        self.add(order)
        return order
