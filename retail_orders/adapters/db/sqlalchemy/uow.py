from sqlalchemy.orm import Session, sessionmaker

from retail_orders.adapters.db.sqlalchemy.order_item_repository import SQLAlchemyOrderItemRepository
from retail_orders.adapters.db.sqlalchemy.order_repository import SQLAlchemyOrderRepository
from retail_orders.adapters.db.sqlalchemy.product_repository import SQLAlchemyProductLookup
from retail_orders.application.ports import (
    OrderItemRepository,
    OrderRepository,
    ProductLookup,
    UnitOfWork,
)

# データベースの変更を伴う単一のビジネスロジック全体をラップするデザインパターン
class SQLAlchemyUnitOfWork(UnitOfWork):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self.session: Session | None = None
        self._orders: OrderRepository | None = None
        self._order_items: OrderItemRepository | None = None
        self._products: ProductLookup | None = None

    def __enter__(self) -> "SQLAlchemyUnitOfWork":
        self.session = self._session_factory()
        self.session.begin()
        self._orders = SQLAlchemyOrderRepository(self.session)
        self._order_items = SQLAlchemyOrderItemRepository(self.session)
        self._products = SQLAlchemyProductLookup(self.session)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        try:
            if exc_type:
                self.rollback()
        finally:
            if self.session:
                self.session.close()
            self.session = None

    @property
    def orders(self) -> OrderRepository:
        assert self._orders is not None, "UnitOfWork is not entered."
        return self._orders

    @property
    def order_items(self) -> OrderItemRepository:
        assert self._order_items is not None, "UnitOfWork is not entered."
        return self._order_items

    @property
    def products(self) -> ProductLookup:
        assert self._products is not None, "UnitOfWork is not entered."
        return self._products

    def commit(self) -> None:
        assert self.session is not None, "UnitOfWork is not entered."
        self.session.commit()

    def rollback(self) -> None:
        # 開始前 / 終了後は何もしない
        if self.session is None:
            return
        self.session.rollback()
