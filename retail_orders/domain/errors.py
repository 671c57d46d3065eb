from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

M = TypeVar("M", bound=BaseModel)


class DomainError(Exception): ...


#
# 存在しないエンティティ
#
class NotFoundError(DomainError):
    entity = "Entity"

    def __init__(self, entity_id: int):
        self.entity_id = entity_id
        super().__init__(f"{self.entity} not found by ID: {entity_id}")

class OrderNotFoundError(NotFoundError):
    entity = "Order"

class OrderItemNotFoundError(NotFoundError):
    entity = "Order item"

class ProductNotFoundError(NotFoundError):
    entity = "Product"


#
# バリデーションエラー (違反はまとめて保持する)
#
class ValidationFailedError(DomainError):
    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__("One or more validation errors occurred.")

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "ValidationFailedError":
        messages = []
        for err in exc.errors():
            ctx = err.get("ctx") or {}
            if "error" in ctx:
                messages.append(str(ctx["error"]))
            else:
                loc = ".".join(str(part) for part in err["loc"])
                messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        return cls(messages)


def validate_model(model_cls: type[M], data: dict[str, Any]) -> M:
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise ValidationFailedError.from_pydantic(e) from e
