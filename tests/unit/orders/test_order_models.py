"""Unit tests for the Order state machine and order numbering."""

import re
from decimal import Decimal

import pytest

from modules.orders.constants import TERMINAL_STATES, OrderStatus
from modules.orders.models import Order, OrderItem, OrderNumberSequence

pytestmark = pytest.mark.unit


def _order(customer, **overrides):
    values = {
        "customer": customer,
        "subtotal": Decimal("50.00"),
        "total": Decimal("64.00"),
    }
    values.update(overrides)
    return Order.objects.create(**values)


class TestStateMachine:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("pending", "paid"),
            ("pending", "cancelled"),
            ("paid", "processing"),
            ("paid", "cancelled"),
            ("processing", "shipped"),
            ("processing", "cancelled"),
            ("shipped", "delivered"),
            ("shipped", "refunded"),
            ("paid", "refunded"),
        ],
    )
    def test_allowed(self, current, target):
        assert Order(status=current).can_transition_to(target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            ("delivered", "processing"),
            ("shipped", "pending"),
            ("shipped", "cancelled"),
            ("paid", "pending"),
            ("pending", "shipped"),
            ("cancelled", "paid"),
            ("refunded", "paid"),
        ],
    )
    def test_rejected(self, current, target):
        assert not Order(status=current).can_transition_to(target)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATES))
    def test_terminal_states_go_nowhere(self, status):
        order = Order(status=status)
        assert order.is_terminal
        assert not any(order.can_transition_to(s) for s in OrderStatus.values)


class TestOrderNumbers:
    def test_format(self, customer):
        order = _order(customer)
        assert re.fullmatch(r"ORD-\d{8}-\d{8}", order.order_number)

    def test_numbers_are_unique_and_increasing(self, customer):
        first = _order(customer)
        second = _order(customer)
        assert first.order_number != second.order_number
        assert second.order_number[-8:] > first.order_number[-8:]

    def test_number_is_kept_on_resave(self, customer):
        order = _order(customer)
        number = order.order_number
        order.notes = "Gift wrap"
        order.save()
        assert order.order_number == number
        assert OrderNumberSequence.objects.count() == 1


class TestOrderItem:
    def test_line_total_is_computed(self, customer, make_product):
        order = _order(customer)
        item = OrderItem.objects.create(
            order=order,
            product=make_product(),
            product_name="Solitaire Ring",
            sku="RING-001",
            quantity=3,
            unit_price=Decimal("19.99"),
        )
        assert item.line_total == Decimal("59.97")

    def test_flags_default_to_not_reserved_or_committed(self, customer, make_product):
        item = OrderItem.objects.create(
            order=_order(customer),
            product=make_product(),
            product_name="Solitaire Ring",
            sku="RING-001",
            quantity=1,
            unit_price=Decimal("19.99"),
        )
        assert item.inventory_reserved is False
        assert item.sale_committed is False
