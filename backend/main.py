# backend/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

load_dotenv()

from config import Settings, settings
from database import build_engine, build_session_factory, init_db
from errors import ErrorType
from exceptions import AppException, app_exception_handler, storage_exception_handler

# Router imports
from routes.products import router as products_router
from routes.images import router as images_router
from routes.categories import router as categories_router
from routes.brands import router as brands_router
from routes.attributes import router as attributes_router
from routes.variants import router as variants_router
from routes.stock import router as stock_router
from routes.coupons import router as coupons_router
from routes.orders import router as orders_router
from routes.logs import router as logs_router
from routes.health import router as health_router

logger = logging.getLogger(__name__)


async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "error": ErrorType.VALIDATION_ERROR.value},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    yield
    app.state.engine.dispose()


def create_app(app_settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    app_settings = app_settings or settings

    logging.basicConfig(
        level=app_settings.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    app = FastAPI(title="Storefront Inventory API", version="1.0.0", lifespan=lifespan)

    # The storage handle is built once here and handed to every request via get_db
    app.state.settings = app_settings
    app.state.engine = engine or build_engine(app_settings.DATABASE_URL)
    app.state.session_factory = build_session_factory(app.state.engine)

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)

    # CORS Configuration
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    if app_settings.FRONTEND_URL and app_settings.FRONTEND_URL not in origins:
        origins.append(app_settings.FRONTEND_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Router registration
    app.include_router(health_router)
    app.include_router(products_router)
    app.include_router(images_router)
    app.include_router(categories_router)
    app.include_router(brands_router)
    app.include_router(attributes_router)
    app.include_router(variants_router)
    app.include_router(stock_router, prefix="/stock")
    app.include_router(coupons_router)
    app.include_router(orders_router)
    app.include_router(logs_router)

    @app.get("/")
    def read_root():
        return {"message": "Storefront Inventory API is running"}

    logger.info("Application configured for %s", app.state.engine.url.render_as_string(hide_password=True))
    return app


app = create_app()
