from datetime import date, datetime
import enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from retail_orders.domain.errors import validate_model
from retail_orders.domain.lifecycle import Active, Deleted, Lifecycle
from retail_orders.domain.order_item import OrderLine


class OrderStatus(str, enum.Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    DELIVERED = "Delivered"
    CANCELED = "Canceled"


#
# 集約ルート
#
class Order(BaseModel):
    id: int = 0
    order_date: datetime | None = Field(default=None, validate_default=True)
    total_value: float = Field(default=0.0, validate_default=True, allow_inf_nan=False)
    status: OrderStatus = OrderStatus.PENDING
    client_id: int | None = Field(default=None, validate_default=True)
    client_name: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    lifecycle: Lifecycle = Field(default_factory=Active)
    items: list[OrderLine] = Field(default_factory=list, validate_default=True)

    @field_validator("order_date")
    def validate_order_date(cls, v: datetime | None) -> datetime | None:
        if v is None:
            raise ValueError("Order date is required")
        # 日付単位で比較する (当日中の時刻は未来扱いしない)
        if v.date() > date.today():
            raise ValueError("Order date cannot be in the future")
        return v

    @field_validator("total_value")
    def validate_total_value(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("Total value must be greater than zero")
        return v

    @field_validator("client_id")
    def validate_client_id(cls, v: int | None) -> int | None:
        if v is None:
            raise ValueError("Client is required")
        if v <= 0:
            raise ValueError("Client ID is required")
        return v

    @field_validator("items")
    def validate_items(cls, v: list[OrderLine]) -> list[OrderLine]:
        if not v:
            raise ValueError("Order must contain at least one item")
        return v

    @classmethod
    def from_persistence(cls, **data: Any) -> "Order":
        # 保存済みの値は再検証しない
        return cls.model_construct(**data)

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)

    @property
    def deleted_at(self) -> datetime | None:
        return self.lifecycle.at if isinstance(self.lifecycle, Deleted) else None

    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    def revise(
        self,
        order_date: datetime | None,
        total_value: float,
        status: OrderStatus,
        client_id: int | None,
        items: list[dict[str, Any]],
    ) -> "Order":
        return validate_model(Order, {
            "id": self.id,
            "order_date": order_date,
            "total_value": total_value,
            "status": status,
            "client_id": client_id,
            "client_name": self.client_name,
            "created_at": self.created_at,
            "lifecycle": self.lifecycle.model_dump(),
            "items": items,
        })

    def cancel(self) -> None:
        self.status = OrderStatus.CANCELED

    def mark_deleted(self, at: datetime) -> None:
        self.lifecycle = Deleted(at=at)
