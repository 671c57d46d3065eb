from pydantic import BaseModel, ConfigDict

# 注文集約の外側にある商品 (参照のみ)
class Product(BaseModel):
    id: int
    name: str
    price: float
    model_config = ConfigDict(frozen=True)
