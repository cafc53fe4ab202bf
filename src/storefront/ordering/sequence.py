"""Daily order numbers.

A single `DailyCounter` record (keyed by `ORDER_COUNTER`) remembers the day it
is counting for and the last number issued on that day. The first number
asked for on a new server date starts again at 1.
"""

import threading
from datetime import date

from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String

from storefront.domain import logger, storefront

ORDER_COUNTER = "orders"

_counter_lock = threading.Lock()


def today() -> str:
    """Server-local calendar date as YYYY-MM-DD."""
    return date.today().isoformat()


@storefront.aggregate
class DailyCounter:
    name = Identifier(identifier=True, required=True)
    date = String(required=True, max_length=10)
    seq = Integer(default=0, min_value=0)

    def issue(self, on_date) -> int:
        if self.date == on_date:
            self.seq = (self.seq or 0) + 1
        else:
            self.date = on_date
            self.seq = 1
        return self.seq

    def release(self, on_date, number) -> bool:
        """Take back `number` if it is still the last one issued on `on_date`."""
        if self.date != on_date or self.seq != number:
            return False
        self.seq = number - 1
        return True


@storefront.repository(part_of=DailyCounter)
class SequenceCounter:
    """Issues `(order_date, order_number)` pairs.

    Each read-modify-write runs under `_counter_lock`. Inside a unit of work
    the new value only lands on commit, so order placement also holds the
    placement lock across the whole command.
    """

    def _load(self, name):
        try:
            return self.get(name)
        except ObjectNotFoundError:
            return None

    def next(self, on_date=None, name=ORDER_COUNTER) -> tuple[str, int]:
        on_date = on_date or today()
        with _counter_lock:
            counter = self._load(name)
            if counter is None:
                counter = DailyCounter(name=name, date=on_date, seq=1)
                number = 1
            else:
                number = counter.issue(on_date)

            self.add(counter)
        return on_date, number

    def release(self, on_date, number, name=ORDER_COUNTER) -> None:
        with _counter_lock:
            counter = self._load(name)
            released = counter is not None and counter.release(on_date, number)
            if released:
                self.add(counter)
        if released:
            logger.warning("Order number released after failed placement", order_date=on_date, order_number=number)

    def current(self, name=ORDER_COUNTER) -> tuple[str, int] | None:
        counter = self._load(name)
        if counter is None:
            return None
        return counter.date, counter.seq
