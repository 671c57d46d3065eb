from typing import Callable

import structlog

from retail_orders.application.dto import OrderReportRow
from retail_orders.application.ports import ReportWriter, UnitOfWork
from retail_orders.domain.order import Order

logger = structlog.get_logger(__name__)

REPORT_FILE_NAME = "Order_Report.csv"
REPORT_CONTENT_TYPE = "text/csv"


def to_report_row(order: Order) -> OrderReportRow:
    return OrderReportRow(
        order_number=order.id,
        client_name=order.client_name or "No Client",
        order_date=order.order_date.strftime("%m/%d/%Y"),
        status=order.status.value,
        total_items=order.total_items,
        total_value=order.total_value,
    )


class OrderReportGenerator:
    def __init__(
        self,
        begin: Callable[[], UnitOfWork],
        writer: ReportWriter,
        include_inactive: bool = False,
    ):
        self._begin = begin
        self._writer = writer
        self._include_inactive = include_inactive

    def generate_csv(self) -> bytes:
        # 失敗しても例外を投げず空のバイト列を返す
        try:
            with self._begin() as uow:
                orders = uow.orders.list_all(include_inactive=self._include_inactive)

            if not orders:
                logger.warning("No orders found to generate the report")
                return b""

            content = self._writer.write(OrderReportRow, [to_report_row(order) for order in orders])
            logger.info("Order report generated", orders=len(orders))
            return content
        except Exception as e:
            logger.error("Error while generating order report", error=str(e))
            return b""
