from datetime import datetime
from typing import Callable

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from retail_orders.adapters.db.sqlalchemy.database import session_factory_from_settings
from retail_orders.adapters.db.sqlalchemy.uow import SQLAlchemyUnitOfWork
from retail_orders.adapters.http.fastapi.schemas import (
    ErrorResponse,
    OrderItemRequest,
    OrderItemResponse,
    OrderPageResponse,
    OrderRequest,
    OrderResponse,
    PendingOrderPageResponse,
    SalesTrendResponse,
)
from retail_orders.adapters.report.csv_writer import CsvReportWriter
from retail_orders.application.ports import UnitOfWork
from retail_orders.application.use_cases.order_items import OrderItemReconciler, OrderItemService
from retail_orders.application.use_cases.orders import OrderDashboardQueries, OrderLifecycleManager
from retail_orders.application.use_cases.reports import (
    REPORT_CONTENT_TYPE,
    REPORT_FILE_NAME,
    OrderReportGenerator,
)
from retail_orders.config import Settings, get_settings
from retail_orders.domain.errors import NotFoundError, ValidationFailedError
from retail_orders.logging_config import configure_logging

# (uvicorn --factory retail_orders.adapters.http.fastapi.api:create_app --reload)
# http://127.0.0.1:8000/docs

logger = structlog.get_logger(__name__)


###################################
# 依存関係
###################################

def get_begin(request: Request) -> Callable[[], UnitOfWork]:
    session_factory = request.app.state.session_factory
    return lambda: SQLAlchemyUnitOfWork(session_factory)

def get_order_manager(begin: Callable[[], UnitOfWork] = Depends(get_begin)) -> OrderLifecycleManager:
    return OrderLifecycleManager(begin=begin, reconciler=OrderItemReconciler())

def get_order_item_service(begin: Callable[[], UnitOfWork] = Depends(get_begin)) -> OrderItemService:
    return OrderItemService(begin=begin, reconciler=OrderItemReconciler())

def get_report_generator(
    request: Request,
    begin: Callable[[], UnitOfWork] = Depends(get_begin),
) -> OrderReportGenerator:
    return OrderReportGenerator(
        begin=begin,
        writer=CsvReportWriter(),
        include_inactive=request.app.state.settings.report_include_inactive,
    )

def get_dashboard(begin: Callable[[], UnitOfWork] = Depends(get_begin)) -> OrderDashboardQueries:
    return OrderDashboardQueries(begin=begin)

# 未指定なら設定値を使う
def get_page_size(request: Request, page_size: int | None = Query(default=None, alias="pageSize")) -> int:
    if page_size is None:
        return request.app.state.settings.default_page_size
    return page_size


###################################
# 注文
###################################

order_router = APIRouter(prefix="/api/Order", tags=["Order"])

@order_router.get("", response_model=OrderPageResponse)
def list_orders(
    page_number: int = Query(default=1, alias="pageNumber"),
    page_size: int = Depends(get_page_size),
    uc: OrderLifecycleManager = Depends(get_order_manager),
):
    return OrderPageResponse.model_validate(uc.list(page_number, page_size).model_dump())


# /{order_id} より先に登録する
@order_router.get("/generate-csv-report")
def generate_csv_report(uc: OrderReportGenerator = Depends(get_report_generator)):
    return Response(
        content=uc.generate_csv(),
        media_type=REPORT_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{REPORT_FILE_NAME}"'},
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, uc: OrderLifecycleManager = Depends(get_order_manager)):
    return OrderResponse.model_validate(uc.get(order_id).model_dump())


@order_router.post("", response_model=OrderResponse, status_code=201)
def create_order(data: OrderRequest, uc: OrderLifecycleManager = Depends(get_order_manager)):
    return OrderResponse.model_validate(uc.create(data.to_input()).model_dump())


@order_router.put("/{order_id}", status_code=204)
def update_order(order_id: int, data: OrderRequest, uc: OrderLifecycleManager = Depends(get_order_manager)):
    uc.update(order_id, data.to_input())
    return Response(status_code=204)


@order_router.delete("/{order_id}", status_code=204)
def delete_order(order_id: int, uc: OrderLifecycleManager = Depends(get_order_manager)):
    uc.delete(order_id)
    return Response(status_code=204)


###################################
# 注文明細
###################################

order_item_router = APIRouter(prefix="/api/OrderItem", tags=["OrderItem"])

@order_item_router.get("/{order_id}", response_model=list[OrderItemResponse])
def list_order_items(order_id: int, uc: OrderItemService = Depends(get_order_item_service)):
    return [OrderItemResponse.model_validate(item.model_dump()) for item in uc.list_by_order(order_id)]


@order_item_router.post("", response_model=OrderItemResponse, status_code=201)
def create_order_item(data: OrderItemRequest, uc: OrderItemService = Depends(get_order_item_service)):
    return OrderItemResponse.model_validate(uc.create(data.to_input()).model_dump())


@order_item_router.put("/sync/{order_id}", status_code=204)
def sync_order_items(
    order_id: int,
    data: list[OrderItemRequest],
    uc: OrderItemService = Depends(get_order_item_service),
):
    uc.sync(order_id, [item.to_input() for item in data])
    return Response(status_code=204)


@order_item_router.put("/{item_id}", status_code=204)
def update_order_item(item_id: int, data: OrderItemRequest, uc: OrderItemService = Depends(get_order_item_service)):
    uc.update(item_id, data.to_input())
    return Response(status_code=204)


@order_item_router.delete("/{item_id}", status_code=204)
def delete_order_item(item_id: int, uc: OrderItemService = Depends(get_order_item_service)):
    uc.delete(item_id)
    return Response(status_code=204)


###################################
# ダッシュボード
###################################

dashboard_router = APIRouter(prefix="/api/Dashboard/orders", tags=["Dashboard"])

@dashboard_router.get("/total-sales")
def total_sales(uc: OrderDashboardQueries = Depends(get_dashboard)) -> dict[str, float]:
    return {"totalSales": uc.total_sales()}


@dashboard_router.get("/sales-trend", response_model=SalesTrendResponse)
def sales_trend(uc: OrderDashboardQueries = Depends(get_dashboard)):
    return SalesTrendResponse.model_validate(uc.sales_trend().model_dump())


@dashboard_router.get("/pending-count")
def pending_count(uc: OrderDashboardQueries = Depends(get_dashboard)) -> dict[str, int]:
    return {"pendingOrders": uc.pending_count()}


@dashboard_router.get("/date-range", response_model=list[OrderResponse])
def orders_by_date_range(
    start_date: datetime = Query(alias="startDate"),
    end_date: datetime = Query(alias="endDate"),
    uc: OrderDashboardQueries = Depends(get_dashboard),
):
    return [OrderResponse.model_validate(o.model_dump()) for o in uc.list_by_date_range(start_date, end_date)]


@dashboard_router.get("/pending", response_model=PendingOrderPageResponse)
def pending_orders(
    page_number: int = Query(default=1, alias="pageNumber"),
    page_size: int = Depends(get_page_size),
    uc: OrderDashboardQueries = Depends(get_dashboard),
):
    return PendingOrderPageResponse.model_validate(uc.list_pending(page_number, page_size).model_dump())


###################################
# 例外ハンドラ
###################################

def _error(status_code: int, detail: str, errors: list[str] | None = None) -> JSONResponse:
    body = ErrorResponse(detail=detail, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())

def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, str(exc))

def handle_validation_failed(request: Request, exc: ValidationFailedError) -> JSONResponse:
    return _error(400, str(exc), exc.messages)

def handle_stale_data(request: Request, exc: StaleDataError) -> JSONResponse:
    return _error(409, "The record was modified by another request")

def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Integrity constraint violated", error=str(exc.orig))
    return _error(409, "Integrity constraint violated")

def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc))
    return _error(500, "internal server error")


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="Retail Orders")
    app.state.settings = settings
    app.state.session_factory = session_factory or session_factory_from_settings(settings)

    app.include_router(order_router)
    app.include_router(order_item_router)
    app.include_router(dashboard_router)

    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(ValidationFailedError, handle_validation_failed)
    app.add_exception_handler(StaleDataError, handle_stale_data)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(Exception, handle_unexpected)
    return app
