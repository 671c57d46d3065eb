from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

#
# 値オブジェクト: 有効 / 論理削除済み
#
class Active(BaseModel):
    kind: Literal["active"] = "active"
    model_config = ConfigDict(frozen=True)

class Deleted(BaseModel):
    kind: Literal["deleted"] = "deleted"
    at: datetime
    model_config = ConfigDict(frozen=True)


Lifecycle = Annotated[Active | Deleted, Field(discriminator="kind")]
