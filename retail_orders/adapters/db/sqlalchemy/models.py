from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from retail_orders.domain.lifecycle import Active, Deleted


class Base(DeclarativeBase): pass


# is_active と deleted_at は常に対で更新する
class SoftDeleteMixin:
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def lifecycle(self) -> Active | Deleted:
        if self.is_active:
            return Active()
        return Deleted(at=self.deleted_at or self.created_at)

    def apply_lifecycle(self, lifecycle: Active | Deleted) -> None:
        if isinstance(lifecycle, Deleted):
            self.is_active = False
            self.deleted_at = lifecycle.at
        else:
            self.is_active = True
            self.deleted_at = None


class Client(SoftDeleteMixin, Base):
    __tablename__ = "clients"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)


class Product(SoftDeleteMixin, Base):
    __tablename__ = "products"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)


class Order(SoftDeleteMixin, Base):
    __tablename__ = "orders"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    total_value: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    client_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("clients.id"),
        nullable=False,
        index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False) # 楽観的な排他制御用のバージョン番号

    __mapper_args__ = {"version_id_col": version}

    # リレーション
    client: Mapped[Client] = relationship(lazy="joined")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        order_by="OrderItem.id",
        lazy="selectin"
    )


class OrderItem(SoftDeleteMixin, Base):
    __tablename__ = "order_items"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id"),
        nullable=False,
        index=True
    )
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products.id"),
        nullable=False
    )
    product_name: Mapped[str | None] = mapped_column(String(255), nullable=True) # 表示用に非正規化
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unitary_price: Mapped[float] = mapped_column(Float, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # リレーション
    order: Mapped[Order] = relationship(back_populates="items")
