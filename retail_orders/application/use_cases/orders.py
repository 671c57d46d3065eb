from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable

import structlog

from retail_orders.application.dto import (
    OrderInput,
    OrderItemInput,
    OrderItemOutput,
    OrderOutput,
    Page,
    PendingOrderOutput,
    SalesTrendOutput,
)
from retail_orders.application.ports import UnitOfWork
from retail_orders.application.use_cases.order_items import OrderItemReconciler
from retail_orders.domain.errors import (
    OrderItemNotFoundError,
    OrderNotFoundError,
    ValidationFailedError,
    validate_model,
)
from retail_orders.domain.order import Order, OrderStatus
from retail_orders.domain.order_item import OrderLine

logger = structlog.get_logger(__name__)

OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)


def to_order_output(order: Order, items: Iterable[OrderItemOutput] = ()) -> OrderOutput:
    return OrderOutput(
        order_id=order.id,
        order_date=order.order_date,
        total_value=order.total_value,
        status=order.status,
        client_id=order.client_id,
        order_items=list(items),
    )


def _line_data(line: OrderItemInput, owned: dict[int, OrderLine] | None = None) -> dict[str, Any]:
    # 既存明細の商品は変更されないので保存済みの商品IDで検証する
    product_id = line.product_id
    if owned and line.id in owned:
        product_id = owned[line.id].product_id
    return {
        "id": line.id,
        "product_id": product_id,
        "quantity": line.quantity,
        "unitary_price": line.unitary_price,
    }


def _check_page(page_number: int, page_size: int) -> None:
    errors = []
    if page_number < 1:
        errors.append("Page number must be greater than zero")
    if page_size < 1:
        errors.append("Page size must be greater than zero")
    if errors:
        raise ValidationFailedError(errors)


class OrderLifecycleManager:
    def __init__(
        self,
        begin: Callable[[], UnitOfWork],
        reconciler: OrderItemReconciler,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._begin = begin
        self._reconciler = reconciler
        self._clock = clock

    def get(self, order_id: int) -> OrderOutput:
        with self._begin() as uow:
            order = uow.orders.get(order_id)
            if order is None:
                logger.error("Order not found", order_id=order_id)
                raise OrderNotFoundError(order_id)
            return to_order_output(order, self._reconciler.list_by_order(uow, order_id))

    def create(self, request: OrderInput) -> OrderOutput:
        logger.info("Creating order", client_id=request.client_id, items=len(request.items))
        # 書き込みの前に集約全体を検証する
        try:
            order = validate_model(Order, {
                "order_date": request.order_date,
                "total_value": request.total_value,
                "status": request.status,
                "client_id": request.client_id,
                "created_at": self._clock(),
                "items": [_line_data(line) for line in request.items],
            })
        except ValidationFailedError as e:
            logger.error("Order validation failed", errors=e.messages)
            raise

        with self._begin() as uow:
            try:
                saved = uow.orders.add(order)
                items = [
                    self._reconciler.create(uow, OrderItemInput(
                        order_id=saved.id,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        unitary_price=line.unitary_price,
                    ))
                    for line in order.items
                ]
                uow.commit()
            except Exception as e:
                logger.error("Error while creating order. Rolling back transaction", error=str(e))
                uow.rollback()
                raise

        logger.info("Order created", order_id=saved.id)
        return to_order_output(saved, items)

    def update(self, order_id: int, request: OrderInput) -> None:
        logger.info("Updating order", order_id=order_id)
        with self._begin() as uow:
            try:
                order = uow.orders.get(order_id)
                if order is None:
                    raise OrderNotFoundError(order_id)

                owned = {line.id: line for line in order.items}
                for line in request.items:
                    if line.id != 0 and line.id not in owned:
                        raise OrderItemNotFoundError(line.id)

                revised = order.revise(
                    order_date=request.order_date,
                    total_value=request.total_value,
                    status=request.status,
                    client_id=request.client_id,
                    items=[_line_data(line, owned) for line in request.items],
                )
                uow.orders.update(revised)
                self._reconciler.sync(uow, order_id, request.items)
                uow.commit()
            except Exception as e:
                logger.error("Error while updating order. Rolling back transaction", order_id=order_id, error=str(e))
                uow.rollback()
                raise

        logger.info("Order updated", order_id=order_id)

    def delete(self, order_id: int) -> None:
        logger.info("Deleting order", order_id=order_id)
        with self._begin() as uow:
            try:
                order = uow.orders.get(order_id)
                if order is None:
                    raise OrderNotFoundError(order_id)

                for item in self._reconciler.list_by_order(uow, order_id):
                    self._reconciler.delete(uow, item.order_item_id)

                order.cancel()
                uow.orders.update(order)
                order.mark_deleted(self._clock())
                uow.orders.soft_delete(order)
                uow.commit()
            except Exception as e:
                logger.error("Error while deleting order. Rolling back transaction", order_id=order_id, error=str(e))
                uow.rollback()
                raise

        logger.info("Order deleted", order_id=order_id)

    # 組み込みの list を隠さないよう最後に定義する
    def list(self, page_number: int = 1, page_size: int = 10) -> Page[OrderOutput]:
        _check_page(page_number, page_size)
        with self._begin() as uow:
            orders, total = uow.orders.list_paged(page_number, page_size)
            return Page[OrderOutput](
                items=[to_order_output(order) for order in orders],
                total_count=total,
            )


class OrderDashboardQueries:
    def __init__(self, begin: Callable[[], UnitOfWork], clock: Callable[[], datetime] = datetime.now):
        self._begin = begin
        self._clock = clock

    def total_sales(self) -> float:
        with self._begin() as uow:
            return uow.orders.total_sales()

    def sales_trend(self, today: date | None = None) -> SalesTrendOutput:
        today = today or self._clock().date()
        current_start = datetime(today.year, today.month, 1)
        previous_start = (current_start - timedelta(days=1)).replace(day=1)
        next_start = (current_start + timedelta(days=32)).replace(day=1)

        with self._begin() as uow:
            current = uow.orders.sales_between(current_start, next_start)
            previous = uow.orders.sales_between(previous_start, current_start)

        if previous == 0:
            change = 100
        else:
            change = int((current - previous) / previous * 100)
        return SalesTrendOutput(
            current_month_sales=current,
            previous_month_sales=previous,
            change_percentage=change,
        )

    def pending_count(self) -> int:
        with self._begin() as uow:
            return uow.orders.count_by_status(*OPEN_STATUSES)

    def list_by_date_range(self, start: datetime, end: datetime) -> list[OrderOutput]:
        if start > end:
            raise ValidationFailedError(["Start date must not be after end date"])
        with self._begin() as uow:
            return [to_order_output(order) for order in uow.orders.list_by_date_range(start, end)]

    def list_pending(self, page_number: int = 1, page_size: int = 10) -> Page[PendingOrderOutput]:
        _check_page(page_number, page_size)
        with self._begin() as uow:
            orders, total = uow.orders.list_by_status_paged(OPEN_STATUSES, page_number, page_size)
            return Page[PendingOrderOutput](
                items=[
                    PendingOrderOutput(
                        id=f"ORD-{order.id}",
                        client_name=order.client_name or "Client not informed",
                        amount=order.total_value,
                        status=order.status,
                        date=order.order_date,
                    )
                    for order in orders
                ],
                total_count=total,
            )
