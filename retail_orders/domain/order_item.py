from datetime import datetime

from pydantic import BaseModel, Field, computed_field, field_validator

from retail_orders.domain.errors import validate_model
from retail_orders.domain.lifecycle import Active, Deleted, Lifecycle

#
# 値オブジェクト: 注文明細の行 (注文IDを持たない)
#
class OrderLine(BaseModel):
    id: int = 0
    product_id: int = Field(default=0, validate_default=True)
    quantity: int = Field(default=0, validate_default=True)
    unitary_price: float = Field(default=0.0, validate_default=True, allow_inf_nan=False)

    @computed_field
    @property
    def subtotal(self) -> float:
        return self.quantity * self.unitary_price

    @field_validator("product_id")
    def validate_product_id(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Product ID is required")
        return v

    @field_validator("quantity")
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v

    @field_validator("unitary_price")
    def validate_unitary_price(cls, v: float) -> float:
        if not v > 0:
            raise ValueError("Unitary price must be greater than zero")
        return v


#
# エンティティ
#
class OrderItem(OrderLine):
    order_id: int = Field(default=0, validate_default=True)
    product_name: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
    lifecycle: Lifecycle = Field(default_factory=Active)

    @field_validator("order_id")
    def validate_order_id(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Order ID is required")
        return v

    @property
    def is_active(self) -> bool:
        return isinstance(self.lifecycle, Active)

    @property
    def deleted_at(self) -> datetime | None:
        return self.lifecycle.at if isinstance(self.lifecycle, Deleted) else None

    def revise(self, quantity: int, unitary_price: float) -> "OrderItem":
        # 変更後のエンティティ全体を検証し直す
        data = self.model_dump(exclude={"subtotal"})
        data.update(quantity=quantity, unitary_price=unitary_price)
        return validate_model(OrderItem, data)

    def mark_deleted(self, at: datetime) -> None:
        self.lifecycle = Deleted(at=at)
