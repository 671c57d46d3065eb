from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from retail_orders.domain.order import OrderStatus

T = TypeVar("T")

# DTO (Data Transfer Object - データ転送オブジェクト)

#
# 入力
#
class OrderItemInput(BaseModel):
    id: int = 0
    order_id: int = 0
    product_id: int = 0
    quantity: int = 0
    unitary_price: float = 0.0

class OrderInput(BaseModel):
    order_date: datetime | None = None
    total_value: float = 0.0
    status: OrderStatus = OrderStatus.PENDING
    client_id: int | None = None
    items: list[OrderItemInput] = Field(default_factory=list)


#
# 出力
#
class OrderItemOutput(BaseModel):
    order_item_id: int
    order_id: int
    product_id: int
    product_name: str | None
    quantity: int
    unitary_price: float
    subtotal: float

class OrderOutput(BaseModel):
    order_id: int
    order_date: datetime
    total_value: float
    status: OrderStatus
    client_id: int
    # 一覧では明細を省略する
    order_items: list[OrderItemOutput] = Field(default_factory=list)

class Page(BaseModel, Generic[T]):
    items: list[T]
    total_count: int

class OrderReportRow(BaseModel):
    order_number: int = Field(serialization_alias="OrderNumber")
    client_name: str = Field(serialization_alias="ClientName")
    order_date: str = Field(serialization_alias="OrderDate")
    status: str = Field(serialization_alias="Status")
    total_items: int = Field(serialization_alias="TotalItems")
    total_value: float = Field(serialization_alias="TotalValue")

class SalesTrendOutput(BaseModel):
    current_month_sales: float
    previous_month_sales: float
    change_percentage: int

class PendingOrderOutput(BaseModel):
    id: str
    client_name: str
    amount: float
    status: OrderStatus
    date: datetime
