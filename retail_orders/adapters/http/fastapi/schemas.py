from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from retail_orders.application.dto import OrderInput, OrderItemInput
from retail_orders.domain.order import OrderStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


#
# リクエスト
#
class OrderItemRequest(CamelModel):
    order_item_id: int = 0
    order_id: int = 0
    product_id: int = 0
    quantity: int = 0
    unitary_price: float = 0.0

    def to_input(self) -> OrderItemInput:
        return OrderItemInput(
            id=self.order_item_id,
            order_id=self.order_id,
            product_id=self.product_id,
            quantity=self.quantity,
            unitary_price=self.unitary_price,
        )

class OrderRequest(CamelModel):
    order_date: datetime | None = None
    total_value: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    client_id: int | None = None
    order_items: list[OrderItemRequest] = Field(default_factory=list)

    def to_input(self) -> OrderInput:
        return OrderInput(
            order_date=self.order_date,
            total_value=self.total_value,
            status=self.status,
            client_id=self.client_id,
            items=[item.to_input() for item in self.order_items],
        )


#
# レスポンス
#
class OrderItemResponse(CamelModel):
    order_item_id: int
    order_id: int
    product_id: int
    product_name: str | None
    quantity: int
    unitary_price: float
    subtotal: float

class OrderResponse(CamelModel):
    order_id: int
    order_date: datetime
    total_value: float
    status: OrderStatus
    client_id: int
    order_items: list[OrderItemResponse] = Field(default_factory=list)

class OrderPageResponse(CamelModel):
    items: list[OrderResponse]
    total_count: int

class SalesTrendResponse(CamelModel):
    current_month_sales: float
    previous_month_sales: float
    change_percentage: int

class PendingOrderResponse(CamelModel):
    id: str
    client_name: str
    amount: float
    status: OrderStatus
    date: datetime

class PendingOrderPageResponse(CamelModel):
    items: list[PendingOrderResponse]
    total_count: int

class ErrorResponse(BaseModel):
    detail: str
    errors: list[str] = Field(default_factory=list)
