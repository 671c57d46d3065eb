from datetime import datetime
from typing import Callable, TypeVar

import structlog

from retail_orders.application.dto import OrderItemInput, OrderItemOutput
from retail_orders.application.ports import UnitOfWork
from retail_orders.domain.errors import (
    OrderItemNotFoundError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationFailedError,
    validate_model,
)
from retail_orders.domain.order_item import OrderItem

logger = structlog.get_logger(__name__)

R = TypeVar("R")


def to_item_output(item: OrderItem) -> OrderItemOutput:
    return OrderItemOutput(
        order_item_id=item.id,
        order_id=item.order_id,
        product_id=item.product_id,
        product_name=item.product_name,
        quantity=item.quantity,
        unitary_price=item.unitary_price,
        subtotal=item.subtotal,
    )


class OrderItemReconciler:
    """Line-item operations run inside a caller-owned unit of work.

    Nothing here commits or rolls back; the caller decides the transaction
    boundary, so the same calls serve a standalone item edit and the item
    half of an order create/update/delete.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock

    def list_by_order(self, uow: UnitOfWork, order_id: int) -> list[OrderItemOutput]:
        return [to_item_output(item) for item in uow.order_items.list_by_order(order_id)]

    def create(self, uow: UnitOfWork, request: OrderItemInput) -> OrderItemOutput:
        logger.info("Creating order item", order_id=request.order_id, product_id=request.product_id)
        item = validate_model(OrderItem, {
            "order_id": request.order_id,
            "product_id": request.product_id,
            "quantity": request.quantity,
            "unitary_price": request.unitary_price,
            "created_at": self._clock(),
        })

        product = uow.products.get(item.product_id)
        if product is None:
            logger.error("Product not found", product_id=item.product_id)
            raise ProductNotFoundError(item.product_id)

        saved = uow.order_items.add(item.model_copy(update={"product_name": product.name}))
        logger.info("Order item created", order_item_id=saved.id, order_id=saved.order_id)
        return to_item_output(saved)

    def update(self, uow: UnitOfWork, item_id: int, request: OrderItemInput) -> None:
        item = uow.order_items.get(item_id)
        if item is None:
            logger.error("Order item not found", order_item_id=item_id)
            raise OrderItemNotFoundError(item_id)

        revised = item.revise(quantity=request.quantity, unitary_price=request.unitary_price)
        uow.order_items.update(revised)
        logger.info("Order item updated", order_item_id=item_id)

    def delete(self, uow: UnitOfWork, item_id: int) -> None:
        item = uow.order_items.get(item_id)
        if item is None:
            logger.error("Order item not found", order_item_id=item_id)
            raise OrderItemNotFoundError(item_id)

        item.mark_deleted(self._clock())
        uow.order_items.soft_delete(item)
        logger.info("Order item deleted", order_item_id=item_id)

    def sync(self, uow: UnitOfWork, order_id: int, desired: list[OrderItemInput]) -> None:
        current = {item.id: item for item in uow.order_items.list_by_order(order_id)}
        to_update = [line for line in desired if line.id != 0]
        to_create = [line for line in desired if line.id == 0]

        # 書き込み前に全件チェックする
        keep: set[int] = set()
        for line in to_update:
            if line.id in keep:
                raise ValidationFailedError([f"Duplicate order item ID in request: {line.id}"])
            keep.add(line.id)
        for line in to_update:
            if line.id not in current:
                logger.error("Order item not found in order", order_id=order_id, order_item_id=line.id)
                raise OrderItemNotFoundError(line.id)

        logger.info(
            "Synchronizing order items",
            order_id=order_id,
            deleted=len(current.keys() - keep),
            updated=len(to_update),
            created=len(to_create),
        )
        for item_id in sorted(current.keys() - keep):
            self.delete(uow, item_id)
        for line in to_update:
            self.update(uow, line.id, line)
        for line in to_create:
            self.create(uow, line.model_copy(update={"order_id": order_id}))


class OrderItemService:
    """Standalone item operations, each in its own transaction."""

    def __init__(self, begin: Callable[[], UnitOfWork], reconciler: OrderItemReconciler):
        self._begin = begin
        self._reconciler = reconciler

    def list_by_order(self, order_id: int) -> list[OrderItemOutput]:
        with self._begin() as uow:
            return self._reconciler.list_by_order(uow, order_id)

    def create(self, request: OrderItemInput) -> OrderItemOutput:
        def action(uow: UnitOfWork) -> OrderItemOutput:
            self._require_order(uow, request.order_id)
            return self._reconciler.create(uow, request)
        return self._in_transaction("creating order item", action)

    def update(self, item_id: int, request: OrderItemInput) -> None:
        self._in_transaction(
            "updating order item",
            lambda uow: self._reconciler.update(uow, item_id, request),
        )

    def delete(self, item_id: int) -> None:
        self._in_transaction(
            "deleting order item",
            lambda uow: self._reconciler.delete(uow, item_id),
        )

    def sync(self, order_id: int, desired: list[OrderItemInput]) -> None:
        def action(uow: UnitOfWork) -> None:
            self._require_order(uow, order_id)
            self._reconciler.sync(uow, order_id, desired)
        self._in_transaction("synchronizing order items", action)

    def _require_order(self, uow: UnitOfWork, order_id: int) -> None:
        if uow.orders.get(order_id) is None:
            logger.error("Order not found", order_id=order_id)
            raise OrderNotFoundError(order_id)

    def _in_transaction(self, action: str, fn: Callable[[UnitOfWork], R]) -> R:
        with self._begin() as uow:
            try:
                result = fn(uow)
                uow.commit()
                return result
            except Exception as e:
                logger.error(f"Error while {action}. Rolling back transaction", error=str(e))
                uow.rollback()
                raise
