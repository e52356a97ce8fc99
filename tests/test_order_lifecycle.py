from decimal import Decimal

import pytest

from marketplace.domain.errors import InvalidTransition, Unauthorized, ValidationError
from marketplace.domain.schemas import ChoiceGroupIn, ChoiceOptionIn, VariantIn
from marketplace.domain.selection import Selection
from marketplace.domain.status import OrderStatus, TRANSITIONS
from marketplace.services import notification_service


@pytest.fixture
def product(make_product):
    return make_product(stock=5)


@pytest.fixture
def pending(carts, checkout, customer, product):
    carts.add_item(customer, product.id, Selection.of(), 2)
    return checkout.checkout_from_cart(customer)


@pytest.fixture
def placed(checkout, customer, pending, details):
    return checkout.place_order(pending["id"], customer, details)


def _stock(catalog, product_id):
    return catalog.get_product(product_id).stock


def test_state_machine_edges():
    edges = {
        (source, t.target)
        for t in TRANSITIONS.values()
        for source in t.sources
    }

    assert edges == {
        (OrderStatus.PENDING, OrderStatus.PLACED),
        (OrderStatus.PENDING, OrderStatus.CANCELED),
        (OrderStatus.PLACED, OrderStatus.CANCELED),
        (OrderStatus.PLACED, OrderStatus.SHIPPED),
        (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
    }


def test_ship_pending_order_fails(orders, seller, pending):
    with pytest.raises(InvalidTransition):
        orders.ship(pending["id"], seller)


def test_deliver_cannot_skip_shipped(orders, seller, placed):
    with pytest.raises(InvalidTransition):
        orders.deliver(placed["id"], seller)


def test_full_flow_credits_earnings_once(orders, catalog, seller, store, placed):
    orders.ship(placed["id"], seller)
    order = orders.deliver(placed["id"], seller)

    assert order["status"] == "Delivered"
    assert [e["status"] for e in order["history"]] == ["Pending", "Placed", "Shipped", "Delivered"]

    with pytest.raises(InvalidTransition):
        orders.deliver(placed["id"], seller)

    store = catalog.get_store(store.id)
    assert store.completed_orders == 1
    assert store.total_earnings == Decimal("100.00")


def test_customer_cancels_placed_order(orders, catalog, carts, customer, product, placed):
    assert _stock(catalog, product.id) == 3

    order = orders.cancel(placed["id"], customer)

    assert order["status"] == "Canceled"
    assert _stock(catalog, product.id) == 5
    assert carts.view_cart(customer)["items"] == []


def test_second_cancel_does_not_restore_twice(orders, catalog, customer, product, pending):
    orders.cancel(pending["id"], customer)

    with pytest.raises(InvalidTransition):
        orders.cancel(pending["id"], customer)

    assert _stock(catalog, product.id) == 5


def test_cancel_restores_variant_and_every_option_once(carts, checkout, orders, catalog, customer, make_product):
    product = make_product(
        name="Milk Tea",
        price=Decimal("0.00"),
        stock=0,
        variants=[
            VariantIn(name="Small", price=Decimal("39.00"), stock=6),
            VariantIn(name="Large", price=Decimal("49.00"), stock=4),
        ],
        choice_groups=[
            ChoiceGroupIn(
                name="Add-ons",
                allow_multiple=True,
                options=[
                    ChoiceOptionIn(name="Pearls", price=Decimal("10.00"), stock=5),
                    ChoiceOptionIn(name="Pudding", price=Decimal("15.00"), stock=3),
                ],
            )
        ],
    )
    small, large = product.variants
    pearls, pudding = product.choice_groups[0].options
    carts.add_item(customer, product.id, Selection.of(large.id, [pearls.id, pudding.id]), 2)

    def stocks():
        p = catalog.get_product(product.id)
        return (
            p.stock,
            [v.stock for v in p.variants],
            [o.stock for o in p.choice_groups[0].options],
        )

    order = checkout.checkout_from_cart(customer)
    assert order["total_amount"] == Decimal("148.00")
    assert stocks() == (0, [6, 2], [3, 1])

    orders.cancel(order["id"], customer)
    assert stocks() == (0, [6, 4], [5, 3])

    with pytest.raises(InvalidTransition):
        orders.cancel(order["id"], customer)
    assert stocks() == (0, [6, 4], [5, 3])


def test_customer_cannot_cancel_shipped(orders, customer, seller, placed):
    orders.ship(placed["id"], seller)

    with pytest.raises(InvalidTransition):
        orders.cancel(placed["id"], customer)


def test_seller_cancels_own_store_order(orders, catalog, seller, product, pending):
    order = orders.cancel(pending["id"], seller, note="Sold out today")

    assert order["status"] == "Canceled"
    assert order["history"][-1]["note"] == "Sold out today"
    assert order["history"][-1]["actor_role"] == "seller"
    assert _stock(catalog, product.id) == 5


def test_foreign_seller_cannot_touch_order(orders, other_seller, other_store, pending):
    with pytest.raises(Unauthorized):
        orders.cancel(pending["id"], other_seller)


def test_customer_cannot_ship(orders, customer, placed):
    with pytest.raises(Unauthorized):
        orders.ship(placed["id"], customer)


def test_other_customer_cannot_view(orders, other_customer, pending):
    with pytest.raises(Unauthorized):
        orders.get_order(pending["id"], other_customer)


def test_seller_queue_shows_only_own_lines(
    carts, checkout, orders, customer, seller, other_seller, other_store, make_product, details
):
    mine = make_product(name="Pancit")
    theirs = make_product(actor=other_seller, store_id=other_store.id, name="Barako Coffee")
    carts.add_item(customer, mine.id, Selection.of(), 1)
    carts.add_item(customer, theirs.id, Selection.of(), 1)
    order = checkout.checkout_from_cart(customer)

    queue = orders.list_for_seller(seller)
    assert [o["id"] for o in queue] == [order["id"]]
    assert [i["product_name"] for i in queue[0]["items"]] == ["Pancit"]

    assert orders.list_for_seller(seller, status="Placed") == []
    checkout.place_order(order["id"], customer, details)
    assert len(orders.list_for_seller(other_seller, status="Placed")) == 1


def test_seller_queue_rejects_unknown_status(orders, seller):
    with pytest.raises(ValidationError):
        orders.list_for_seller(seller, status="Lost")


def test_customer_orders_newest_first(carts, checkout, orders, customer, product):
    carts.add_item(customer, product.id, Selection.of(), 1)
    first = checkout.checkout_from_cart(customer)
    second = checkout.checkout_from_cart(customer)

    assert [o["id"] for o in orders.list_for_customer(customer)] == [second["id"], first["id"]]


def test_payment_status_moves_forward(orders, seller, placed):
    order = orders.update_payment_status(placed["id"], seller, "Paid")
    assert order["payment_status"] == "Paid"

    with pytest.raises(InvalidTransition):
        orders.update_payment_status(placed["id"], seller, "Unpaid")


def test_canceled_order_freezes_payment(orders, customer, seller, pending):
    orders.cancel(pending["id"], customer)

    with pytest.raises(InvalidTransition):
        orders.update_payment_status(pending["id"], seller, "Paid")


def test_notification_failure_does_not_block_transition(orders, seller, placed, monkeypatch):
    def broken(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(notification_service.send_status_change_task, "delay", broken)

    order = orders.ship(placed["id"], seller)

    assert order["status"] == "Shipped"


def test_notification_sent_on_transition(orders, seller, placed, monkeypatch):
    sent = []
    monkeypatch.setattr(
        notification_service.send_status_change_task,
        "delay",
        lambda *args: sent.append(args),
    )

    orders.ship(placed["id"], seller)

    assert sent == [(1, placed["id"], "Shipped")]
