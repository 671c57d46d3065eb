from sqlalchemy.orm import Session

from retail_orders.adapters.db.sqlalchemy import models
from retail_orders.application.ports import ProductLookup
from retail_orders.domain.product import Product


class SQLAlchemyProductLookup(ProductLookup):
    def __init__(self, session: Session):
        self.session = session

    def get(self, product_id: int) -> Product | None:
        product_model = self.session.query(models.Product).filter_by(id=product_id, is_active=True).first()
        if product_model:
            return Product(id=product_model.id, name=product_model.name, price=product_model.price)
        return None
