from datetime import datetime

from sqlalchemy.orm import Session

from retail_orders.adapters.db.sqlalchemy import models
from retail_orders.application.ports import OrderItemRepository
from retail_orders.domain.lifecycle import Deleted
from retail_orders.domain.order_item import OrderItem


def _to_domain(item_model: models.OrderItem) -> OrderItem:
    return OrderItem.model_construct(
        id=item_model.id,
        order_id=item_model.order_id,
        product_id=item_model.product_id,
        product_name=item_model.product_name,
        quantity=item_model.quantity,
        unitary_price=item_model.unitary_price,
        created_at=item_model.created_at,
        lifecycle=item_model.lifecycle(),
    )


class SQLAlchemyOrderItemRepository(OrderItemRepository):
    def __init__(self, session: Session):
        self.session = session

    def get(self, item_id: int) -> OrderItem | None:
        item_model = self.session.query(models.OrderItem).filter_by(id=item_id, is_active=True).first()
        if item_model:
            return _to_domain(item_model)
        return None

    def list_by_order(self, order_id: int) -> list[OrderItem]:
        item_models = (
            self.session.query(models.OrderItem)
            .filter_by(order_id=order_id, is_active=True)
            .order_by(models.OrderItem.id)
            .all()
        )
        return [_to_domain(m) for m in item_models]

    def add(self, item: OrderItem) -> OrderItem:
        item_model = models.OrderItem(
            order_id=item.order_id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            unitary_price=item.unitary_price,
            created_at=item.created_at,
        )
        item_model.apply_lifecycle(item.lifecycle)
        self.session.add(item_model)
        self.session.flush()
        return item.model_copy(update={"id": item_model.id})

    def update(self, item: OrderItem) -> None:
        item_model = self.session.get_one(models.OrderItem, item.id)
        item_model.quantity = item.quantity
        item_model.unitary_price = item.unitary_price
        item_model.product_name = item.product_name
        self.session.flush()

    def soft_delete(self, item: OrderItem) -> None:
        item_model = self.session.get_one(models.OrderItem, item.id)
        item_model.apply_lifecycle(Deleted(at=item.deleted_at or datetime.now()))
        self.session.flush()
