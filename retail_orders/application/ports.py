from abc import ABC, abstractmethod
from datetime import datetime
from typing import Sequence

from pydantic import BaseModel

from retail_orders.domain.order import Order, OrderStatus
from retail_orders.domain.order_item import OrderItem
from retail_orders.domain.product import Product


class ProductLookup(ABC):
    @abstractmethod
    def get(self, product_id: int) -> Product | None: ...


class OrderRepository(ABC):
    @abstractmethod
    def get(self, order_id: int) -> Order | None: ...

    @abstractmethod
    def list_paged(self, page_number: int, page_size: int) -> tuple[list[Order], int]: ...

    @abstractmethod
    def list_all(self, include_inactive: bool = False) -> list[Order]: ...

    @abstractmethod
    def add(self, order: Order) -> Order: ...

    @abstractmethod
    def update(self, order: Order) -> None: ...

    @abstractmethod
    def soft_delete(self, order: Order) -> None: ...

    @abstractmethod
    def total_sales(self) -> float: ...

    @abstractmethod
    def sales_between(self, start: datetime, end: datetime) -> float: ...

    @abstractmethod
    def count_by_status(self, *statuses: OrderStatus) -> int: ...

    @abstractmethod
    def list_by_date_range(self, start: datetime, end: datetime) -> list[Order]: ...

    @abstractmethod
    def list_by_status_paged(
        self, statuses: Sequence[OrderStatus], page_number: int, page_size: int
    ) -> tuple[list[Order], int]: ...


class OrderItemRepository(ABC):
    @abstractmethod
    def get(self, item_id: int) -> OrderItem | None: ...

    @abstractmethod
    def list_by_order(self, order_id: int) -> list[OrderItem]: ...

    @abstractmethod
    def add(self, item: OrderItem) -> OrderItem: ...

    @abstractmethod
    def update(self, item: OrderItem) -> None: ...

    @abstractmethod
    def soft_delete(self, item: OrderItem) -> None: ...


class UnitOfWork(ABC):
    @abstractmethod
    def __enter__(self) -> "UnitOfWork": ...

    @abstractmethod
    def __exit__(self, exc_type, exc_value, traceback) -> None: ...

    @property
    @abstractmethod
    def orders(self) -> OrderRepository: ...

    @property
    @abstractmethod
    def order_items(self) -> OrderItemRepository: ...

    @property
    @abstractmethod
    def products(self) -> ProductLookup: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


class ReportWriter(ABC):
    @abstractmethod
    def write(self, row_type: type[BaseModel], rows: Sequence[BaseModel]) -> bytes: ...
