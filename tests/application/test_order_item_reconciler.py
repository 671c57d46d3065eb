"""Tests for line-item reconciliation inside a caller-owned unit of work."""

from unittest.mock import MagicMock

import pytest

from retail_orders.adapters.db.sqlalchemy import models
from retail_orders.application.dto import OrderItemInput
from retail_orders.application.use_cases.order_items import OrderItemService
from retail_orders.domain.errors import (
    OrderItemNotFoundError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationFailedError,
)
from retail_orders.domain.product import Product


def _items(begin, reconciler, order_id):
    with begin() as uow:
        return reconciler.list_by_order(uow, order_id)


def _snapshot(begin, reconciler, order_id):
    return [
        (item.order_item_id, item.product_id, item.quantity, item.unitary_price)
        for item in _items(begin, reconciler, order_id)
    ]


class TestListAndCreate:
    def test_list_by_order_returns_active_items_with_product_names(self, begin, reconciler, order):
        items = _items(begin, reconciler, order.order_id)

        assert [item.product_name for item in items] == ["Keyboard", "Mouse"]
        assert [item.subtotal for item in items] == [100.0, 25.0]
        assert all(item.order_id == order.order_id for item in items)

    def test_create_assigns_id_and_resolves_product(self, begin, reconciler, order):
        with begin() as uow:
            created = reconciler.create(uow, OrderItemInput(
                order_id=order.order_id, product_id=3, quantity=2, unitary_price=300.0,
            ))
            uow.commit()

        assert created.order_item_id > 0
        assert created.product_name == "Monitor"
        assert created.subtotal == 600.0
        assert len(_items(begin, reconciler, order.order_id)) == 3

    @pytest.mark.parametrize("product_id", [99, 4])
    def test_create_with_unknown_or_inactive_product(self, begin, reconciler, order, product_id):
        with begin() as uow:
            with pytest.raises(ProductNotFoundError):
                reconciler.create(uow, OrderItemInput(
                    order_id=order.order_id, product_id=product_id, quantity=1, unitary_price=5.0,
                ))

    def test_create_validates_before_lookup(self, reconciler):
        uow = MagicMock()
        with pytest.raises(ValidationFailedError) as exc_info:
            reconciler.create(uow, OrderItemInput(order_id=1, product_id=1, quantity=0, unitary_price=0))

        assert set(exc_info.value.messages) == {
            "Quantity must be greater than zero",
            "Unitary price must be greater than zero",
        }
        uow.products.get.assert_not_called()
        uow.order_items.add.assert_not_called()


class TestUpdateAndDelete:
    def test_update_overwrites_quantity_and_price(self, begin, reconciler, order):
        item_id = order.order_items[0].order_item_id
        with begin() as uow:
            reconciler.update(uow, item_id, OrderItemInput(quantity=5, unitary_price=45.0))
            uow.commit()

        item = _items(begin, reconciler, order.order_id)[0]
        assert item.quantity == 5
        assert item.unitary_price == 45.0
        assert item.subtotal == 225.0
        assert item.product_name == "Keyboard"

    def test_update_missing_item(self, begin, reconciler):
        with begin() as uow:
            with pytest.raises(OrderItemNotFoundError):
                reconciler.update(uow, 999, OrderItemInput(quantity=1, unitary_price=1.0))

    def test_update_revalidates(self, begin, reconciler, order):
        item_id = order.order_items[0].order_item_id
        with begin() as uow:
            with pytest.raises(ValidationFailedError):
                reconciler.update(uow, item_id, OrderItemInput(quantity=0, unitary_price=45.0))

        assert _items(begin, reconciler, order.order_id)[0].quantity == 2

    def test_delete_is_soft(self, begin, reconciler, order, session_factory):
        item_id = order.order_items[0].order_item_id
        with begin() as uow:
            reconciler.delete(uow, item_id)
            uow.commit()

        assert [i.order_item_id for i in _items(begin, reconciler, order.order_id)] == [
            order.order_items[1].order_item_id
        ]
        with session_factory() as session:
            row = session.get(models.OrderItem, item_id)
            assert row is not None
            assert row.is_active is False
            assert row.deleted_at is not None

    def test_delete_missing_item(self, begin, reconciler):
        with begin() as uow:
            with pytest.raises(OrderItemNotFoundError):
                reconciler.delete(uow, 999)


class TestSync:
    def test_reconciliation_completeness(self, begin, reconciler, order):
        keyboard, mouse = order.order_items
        desired = [
            OrderItemInput(id=keyboard.order_item_id, product_id=1, quantity=3, unitary_price=50.0),
            OrderItemInput(id=0, product_id=3, quantity=1, unitary_price=300.0),
        ]

        with begin() as uow:
            reconciler.sync(uow, order.order_id, desired)
            uow.commit()

        items = _items(begin, reconciler, order.order_id)
        ids = [item.order_item_id for item in items]
        assert keyboard.order_item_id in ids
        assert mouse.order_item_id not in ids
        assert len(items) == 2
        assert items[0].quantity == 3
        assert items[1].product_name == "Monitor"
        assert items[1].order_id == order.order_id

    def test_sync_is_idempotent(self, begin, reconciler, order):
        keyboard, mouse = order.order_items
        desired = [
            OrderItemInput(id=keyboard.order_item_id, product_id=1, quantity=4, unitary_price=50.0),
            OrderItemInput(id=mouse.order_item_id, product_id=2, quantity=1, unitary_price=20.0),
        ]

        with begin() as uow:
            reconciler.sync(uow, order.order_id, desired)
            uow.commit()
        first = _snapshot(begin, reconciler, order.order_id)

        with begin() as uow:
            reconciler.sync(uow, order.order_id, desired)
            uow.commit()
        second = _snapshot(begin, reconciler, order.order_id)

        assert first == second
        assert first == [
            (keyboard.order_item_id, 1, 4, 50.0),
            (mouse.order_item_id, 2, 1, 20.0),
        ]

    def test_unmatched_id_fails_closed(self, begin, reconciler, order):
        before = _snapshot(begin, reconciler, order.order_id)
        desired = [
            OrderItemInput(id=9999, product_id=1, quantity=1, unitary_price=50.0),
            OrderItemInput(id=0, product_id=3, quantity=1, unitary_price=300.0),
        ]

        with begin() as uow:
            with pytest.raises(OrderItemNotFoundError):
                reconciler.sync(uow, order.order_id, desired)
            # ロールバック前でも書き込みは発生していない
            visible = [
                (item.order_item_id, item.product_id, item.quantity, item.unitary_price)
                for item in reconciler.list_by_order(uow, order.order_id)
            ]

        assert visible == before
        assert _snapshot(begin, reconciler, order.order_id) == before

    def test_item_of_another_order_is_rejected(self, begin, reconciler, manager, make_order_input, order):
        other = manager.create(make_order_input(client_id=2))
        foreign_id = other.order_items[0].order_item_id

        with begin() as uow:
            with pytest.raises(OrderItemNotFoundError):
                reconciler.sync(uow, order.order_id, [
                    OrderItemInput(id=foreign_id, product_id=1, quantity=1, unitary_price=50.0),
                ])

        assert len(_items(begin, reconciler, other.order_id)) == 2

    def test_duplicate_ids_are_rejected(self, begin, reconciler, order):
        item_id = order.order_items[0].order_item_id
        with begin() as uow:
            with pytest.raises(ValidationFailedError) as exc_info:
                reconciler.sync(uow, order.order_id, [
                    OrderItemInput(id=item_id, product_id=1, quantity=1, unitary_price=50.0),
                    OrderItemInput(id=item_id, product_id=1, quantity=2, unitary_price=50.0),
                ])
        assert exc_info.value.messages == [f"Duplicate order item ID in request: {item_id}"]

    def test_empty_desired_list_deletes_everything(self, begin, reconciler, order):
        with begin() as uow:
            reconciler.sync(uow, order.order_id, [])
            uow.commit()

        assert _items(begin, reconciler, order.order_id) == []

    def test_sync_does_not_commit(self, reconciler):
        uow = MagicMock()
        uow.order_items.list_by_order.return_value = []
        uow.products.get.return_value = Product(id=1, name="Keyboard", price=2.0)
        uow.order_items.add.side_effect = lambda item: item.model_copy(update={"id": 1})

        reconciler.sync(uow, 5, [OrderItemInput(product_id=1, quantity=1, unitary_price=2.0)])

        added = uow.order_items.add.call_args.args[0]
        assert added.order_id == 5
        uow.commit.assert_not_called()
        uow.rollback.assert_not_called()


class TestOrderItemService:
    def test_create_commits(self, begin, reconciler, order):
        service = OrderItemService(begin=begin, reconciler=reconciler)
        created = service.create(OrderItemInput(
            order_id=order.order_id, product_id=3, quantity=1, unitary_price=300.0,
        ))

        assert created.order_item_id in [i.order_item_id for i in service.list_by_order(order.order_id)]

    def test_create_for_missing_order(self, begin, reconciler):
        service = OrderItemService(begin=begin, reconciler=reconciler)
        with pytest.raises(OrderNotFoundError):
            service.create(OrderItemInput(order_id=999, product_id=1, quantity=1, unitary_price=1.0))

    def test_update_and_delete(self, begin, reconciler, order):
        service = OrderItemService(begin=begin, reconciler=reconciler)
        keyboard, mouse = order.order_items

        service.update(keyboard.order_item_id, OrderItemInput(quantity=7, unitary_price=50.0))
        service.delete(mouse.order_item_id)

        items = service.list_by_order(order.order_id)
        assert [(i.order_item_id, i.quantity) for i in items] == [(keyboard.order_item_id, 7)]

    def test_sync_rolls_back_on_failure(self, reconciler):
        uow = MagicMock()
        uow.__enter__.return_value = uow
        service = OrderItemService(begin=lambda: uow, reconciler=reconciler)
        uow.order_items.list_by_order.return_value = []

        with pytest.raises(OrderItemNotFoundError):
            service.sync(1, [OrderItemInput(id=42, product_id=1, quantity=1, unitary_price=1.0)])

        uow.rollback.assert_called_once()
        uow.commit.assert_not_called()

    def test_sync_for_missing_order(self, begin, reconciler):
        service = OrderItemService(begin=begin, reconciler=reconciler)
        with pytest.raises(OrderNotFoundError):
            service.sync(999, [])
