import csv
import io
from enum import Enum
from typing import Any, Sequence

from pydantic import BaseModel

from retail_orders.application.ports import ReportWriter


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, float):
        # 100.0 -> "100", 150.5 -> "150.5"
        return format(value, ".15g")
    return str(value).strip()


class CsvReportWriter(ReportWriter):
    def __init__(self, delimiter: str = ",", encoding: str = "utf-8"):
        self.delimiter = delimiter
        self.encoding = encoding

    def write(self, row_type: type[BaseModel], rows: Sequence[BaseModel]) -> bytes:
        # ヘッダーはフィールドの alias をフィールド定義順に並べる
        columns = {
            name: info.serialization_alias or name
            for name, info in row_type.model_fields.items()
        }

        buffer = io.StringIO(newline="")
        writer = csv.DictWriter(
            buffer,
            fieldnames=list(columns.values()),
            delimiter=self.delimiter,
            lineterminator="\r\n",
        )
        writer.writeheader()
        for row in rows:
            writer.writerow({
                header: _format(getattr(row, name))
                for name, header in columns.items()
            })
        return buffer.getvalue().encode(self.encoding)
