"""
Cart Aggregator tests, run against both cart stores.
"""

import pytest

from exceptions import InvalidQuantityError, NotFoundError
from services.cart_service import CartAggregator, InMemoryCartStore, SqlCartStore

KEY = "sess_cart"


@pytest.fixture(params=["memory", "sql"])
def aggregator(request, session):
    if request.param == "memory":
        return CartAggregator(InMemoryCartStore())
    return CartAggregator(SqlCartStore(session))


class TestCartLaws:

    def test_add_or_update_is_idempotent(self, aggregator, catalog):
        snapshot = catalog.get_class("C1")
        once = aggregator.add_or_update(KEY, "C1", 50, snapshot)
        twice = aggregator.add_or_update(KEY, "C1", 50, snapshot)
        assert len(twice.lines) == 1
        assert twice.lines == once.lines
        assert aggregator.get(KEY).lines[0].quantity == 50

    def test_one_line_per_class(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.add_or_update(KEY, "C2", 5)
        aggregator.add_or_update(KEY, "C1", 8)
        cart = aggregator.get(KEY)
        assert [(l.class_id, l.quantity) for l in cart.lines] == [("C1", 8), ("C2", 5)]

    def test_set_quantity_zero_equals_remove(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.add_or_update(KEY, "C2", 5)
        aggregator.set_quantity(KEY, "C1", 0)
        via_set = [(l.class_id, l.quantity) for l in aggregator.get(KEY).lines]

        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.remove(KEY, "C1")
        via_remove = [(l.class_id, l.quantity) for l in aggregator.get(KEY).lines]
        assert via_set == via_remove == [("C2", 5)]

    def test_set_quantity_updates_in_place(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.add_or_update(KEY, "C2", 5)
        aggregator.set_quantity(KEY, "C1", 9)
        assert [(l.class_id, l.quantity) for l in aggregator.get(KEY).lines] == [("C1", 9), ("C2", 5)]

    def test_set_quantity_unknown_line(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.set_quantity(KEY, "C1", 3)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_add_requires_positive_quantity(self, aggregator, quantity):
        with pytest.raises(InvalidQuantityError):
            aggregator.add_or_update(KEY, "C1", quantity)
        assert aggregator.get(KEY).lines == []

    def test_remove_absent_line_is_noop(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.remove(KEY, "C9")
        assert len(aggregator.get(KEY).lines) == 1

    def test_clear_rotates_cart_id(self, aggregator):
        cart_id = aggregator.add_or_update(KEY, "C1", 5).cart_id
        cleared = aggregator.clear(KEY)
        assert cleared.lines == []
        assert cleared.cart_id != cart_id
        assert aggregator.get(KEY).cart_id == cleared.cart_id

    def test_totals(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.add_or_update(KEY, "C2", 7)
        totals = aggregator.totals(KEY)
        assert (totals.line_count, totals.total_quantity) == (2, 12)

    def test_carts_are_per_session(self, aggregator):
        aggregator.add_or_update("a", "C1", 5)
        assert aggregator.get("b").lines == []

    def test_discard_forgets_cart(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.discard(KEY)
        assert aggregator.get(KEY).lines == []

    def test_checkout_attempts_survive_reload(self, aggregator):
        aggregator.add_or_update(KEY, "C1", 5)
        aggregator.record_checkout_attempt(KEY)
        assert aggregator.get(KEY).checkout_attempts == 1


class TestDisplayClamp:

    def test_display_quantity_clamped_to_snapshot(self, aggregator, catalog):
        cart = aggregator.add_or_update(KEY, "C1", 900, catalog.get_class("C1"))
        line = cart.lines[0]
        assert line.quantity == 900
        assert line.display_quantity == 850

    def test_snapshot_round_trips_through_store(self, aggregator, catalog):
        aggregator.add_or_update(KEY, "C3", 2, catalog.get_class("C3"))
        snapshot = aggregator.get(KEY).lines[0].class_snapshot
        assert snapshot.id == "C3"
        assert snapshot.remaining == 280
