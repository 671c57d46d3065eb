from datetime import datetime
from typing import Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from retail_orders.adapters.db.sqlalchemy import models
from retail_orders.application.ports import OrderRepository
from retail_orders.domain.lifecycle import Deleted
from retail_orders.domain.order import Order, OrderStatus
from retail_orders.domain.order_item import OrderLine


def _to_domain(order_model: models.Order) -> Order:
    return Order.from_persistence(
        id=order_model.id,
        order_date=order_model.order_date,
        total_value=order_model.total_value,
        status=OrderStatus(order_model.status),
        client_id=order_model.client_id,
        client_name=order_model.client.name if order_model.client else None,
        created_at=order_model.created_at,
        lifecycle=order_model.lifecycle(),
        # 集約からは有効な明細だけが見える
        items=[
            OrderLine.model_construct(
                id=item_model.id,
                product_id=item_model.product_id,
                quantity=item_model.quantity,
                unitary_price=item_model.unitary_price,
            )
            for item_model in order_model.items if item_model.is_active
        ],
    )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: Session):
        self.session = session

    def _active(self):
        return self.session.query(models.Order).filter(models.Order.is_active.is_(True))

    def _count(self, *criteria) -> int:
        return self.session.query(func.count(models.Order.id)).filter(
            models.Order.is_active.is_(True), *criteria
        ).scalar()

    def get(self, order_id: int) -> Order | None:
        order_model = self._active().filter(models.Order.id == order_id).first()
        if order_model:
            return _to_domain(order_model)
        return None

    def list_paged(self, page_number: int, page_size: int) -> tuple[list[Order], int]:
        order_models = (
            self._active()
            .order_by(models.Order.order_date, models.Order.id)
            .offset((page_number - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return [_to_domain(m) for m in order_models], self._count()

    def list_all(self, include_inactive: bool = False) -> list[Order]:
        query = self.session.query(models.Order) if include_inactive else self._active()
        order_models = query.order_by(models.Order.order_date, models.Order.id).all()
        return [_to_domain(m) for m in order_models]

    def add(self, order: Order) -> Order:
        order_model = models.Order(
            order_date=order.order_date,
            total_value=order.total_value,
            status=order.status.value,
            client_id=order.client_id,
            created_at=order.created_at,
        )
        order_model.apply_lifecycle(order.lifecycle)
        self.session.add(order_model)
        # 採番のため flush する
        self.session.flush()
        return order.model_copy(update={"id": order_model.id})

    def update(self, order: Order) -> None:
        order_model = self.session.get_one(models.Order, order.id)
        order_model.order_date = order.order_date
        order_model.total_value = order.total_value
        order_model.status = order.status.value
        order_model.client_id = order.client_id
        order_model.apply_lifecycle(order.lifecycle)
        self.session.flush()

    def soft_delete(self, order: Order) -> None:
        order_model = self.session.get_one(models.Order, order.id)
        order_model.apply_lifecycle(Deleted(at=order.deleted_at or datetime.now()))
        self.session.flush()

    def total_sales(self) -> float:
        total = self.session.query(func.sum(models.Order.total_value)).filter(
            models.Order.is_active.is_(True)
        ).scalar()
        return float(total or 0.0)

    def sales_between(self, start: datetime, end: datetime) -> float:
        # start <= order_date < end
        total = self.session.query(func.sum(models.Order.total_value)).filter(
            models.Order.is_active.is_(True),
            models.Order.order_date >= start,
            models.Order.order_date < end,
        ).scalar()
        return float(total or 0.0)

    def count_by_status(self, *statuses: OrderStatus) -> int:
        return self._count(models.Order.status.in_([s.value for s in statuses]))

    def list_by_date_range(self, start: datetime, end: datetime) -> list[Order]:
        order_models = (
            self._active()
            .filter(models.Order.order_date >= start, models.Order.order_date <= end)
            .order_by(models.Order.order_date, models.Order.id)
            .all()
        )
        return [_to_domain(m) for m in order_models]

    def list_by_status_paged(
        self, statuses: Sequence[OrderStatus], page_number: int, page_size: int
    ) -> tuple[list[Order], int]:
        criteria = models.Order.status.in_([s.value for s in statuses])
        order_models = (
            self._active()
            .filter(criteria)
            .order_by(models.Order.order_date.desc(), models.Order.id.desc())
            .offset((page_number - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return [_to_domain(m) for m in order_models], self._count(criteria)
