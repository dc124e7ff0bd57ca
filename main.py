import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from catalog import CatalogReader, seed_sample_menu
from config import Settings, load_settings
from database import connect, get_database, ping
from errors import (
    CatalogUnavailable,
    ConflictError,
    InvalidTransition,
    ItemNotFound,
    ItemUnavailable,
    OrderError,
    OrderNotFound,
    PersistenceFailure,
    ValidationError,
)
from order_builder import OrderBuilder, OrderQueries
from schemas import (
    CreateOrder,
    CustomerInfo,
    MessageResponse,
    OrderCreated,
    OrderDetail,
    OrderStats,
    OrderSummary,
    StatusUpdate,
)
from stats import StatsAggregator
from status_engine import StatusEngine
from store import OrderStore

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 400,
    ItemNotFound: 400,
    ItemUnavailable: 400,
    OrderNotFound: 404,
    InvalidTransition: 409,
    ConflictError: 409,
    CatalogUnavailable: 503,
    PersistenceFailure: 500,
}


def _status_code_for(exc: OrderError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def wire_components(app: FastAPI, db: Database, settings: Settings) -> None:
    """Build every component around one database handle and hang them on app.state."""
    timeout = settings.request_timeout_ms
    catalog = CatalogReader(db, max_time_ms=timeout)
    store = OrderStore(db, max_time_ms=timeout)
    store.ensure_indexes()
    if settings.seed_sample_menu:
        seed_sample_menu(db)

    app.state.db = db
    app.state.builder = OrderBuilder(catalog, store)
    app.state.queries = OrderQueries(
        catalog, store,
        default_limit=settings.order_list_default_limit,
        max_limit=settings.order_list_max_limit,
    )
    app.state.status_engine = StatusEngine(store)
    app.state.stats = StatsAggregator(store, timezone_name=settings.stats_timezone)


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    """
    Application factory. When ``db`` is given it is used as is and the
    caller owns its lifecycle; otherwise a client is opened on startup and
    closed on shutdown.
    """
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        database = db
        if database is None:
            client = connect(settings)
            database = get_database(client, settings)
        wire_components(app, database, settings)
        logger.info("Restaurant Orders API started")
        try:
            yield
        finally:
            if client is not None:
                client.close()
                logger.info("MongoDB client closed")

    app = FastAPI(title="Restaurant Orders API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OrderError)
    async def order_error_handler(request: Request, exc: OrderError):
        return JSONResponse(
            status_code=_status_code_for(exc),
            content={"error": exc.code, "message": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
            for err in exc.errors()
        ]
        message = "; ".join(f"{d['field']}: {d['message']}" if d["field"] else d["message"] for d in details)
        return JSONResponse(
            status_code=400,
            content={"error": ValidationError.code, "message": message, "details": details},
        )

    app.include_router(router)
    return app


# Dependencies
def get_builder(request: Request) -> OrderBuilder:
    return request.app.state.builder


def get_queries(request: Request) -> OrderQueries:
    return request.app.state.queries


def get_status_engine(request: Request) -> StatusEngine:
    return request.app.state.status_engine


def get_stats(request: Request) -> StatsAggregator:
    return request.app.state.stats


router = APIRouter()


@router.get("/")
def read_root():
    return {"message": "Restaurant Orders API is running"}


@router.get("/api/health")
def health(request: Request):
    response = {"status": "OK", "message": "Restaurant API is running", "database": "Connected"}
    try:
        ping(request.app.state.db)
    except PyMongoError as e:
        logger.warning(f"Health check could not reach MongoDB: {e}")
        response["status"] = "DEGRADED"
        response["database"] = f"Error: {str(e)[:50]}"
    return response


# Orders endpoints
@router.post("/api/orders", response_model=OrderCreated, status_code=201)
def create_order(payload: CreateOrder, builder: OrderBuilder = Depends(get_builder)):
    customer = CustomerInfo(**payload.model_dump(exclude={"items"}))
    order = builder.create(customer, payload.items)
    return OrderCreated(id=order.id, total_amount=order.total_amount, status=order.status)


@router.get("/api/orders", response_model=List[OrderSummary])
def list_orders(
    status: Optional[str] = None,
    limit: Optional[int] = Query(None),
    queries: OrderQueries = Depends(get_queries),
):
    return queries.list_orders(status=status, limit=limit)


# Declared before /api/orders/{order_id} so "stats" is not taken as an id
@router.get("/api/orders/stats/summary", response_model=OrderStats)
def order_stats(day: Optional[date] = Query(None, alias="date"), stats: StatsAggregator = Depends(get_stats)):
    return stats.summary(day)


@router.get("/api/orders/{order_id}", response_model=OrderDetail)
def get_order(order_id: str, queries: OrderQueries = Depends(get_queries)):
    return queries.get_order(order_id)


@router.patch("/api/orders/{order_id}/status", response_model=MessageResponse)
def update_order_status(order_id: str, payload: StatusUpdate,
                        engine: StatusEngine = Depends(get_status_engine)):
    engine.advance(order_id, payload.status)
    return MessageResponse(message=f"Order status updated to {payload.status.value}")


@router.delete("/api/orders/{order_id}", response_model=MessageResponse)
def cancel_order(order_id: str, engine: StatusEngine = Depends(get_status_engine)):
    engine.cancel(order_id)
    return MessageResponse(message="Order cancelled successfully")


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = load_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
