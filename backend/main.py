from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from core.config import settings
from core.logging import configure_logging, get_logger
from db.database import create_db_and_tables
from routers.categories import router as categories_router
from routers.dashboard import router as dashboard_router
from routers.inventory import router as inventory_router
from routers.movements import router as movements_router
from routers.products import router as products_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await create_db_and_tables()
    logger.info("Stock Management API started", version=settings.app_version, environment=settings.environment)
    yield


app = FastAPI(
    title="Stock Management API",
    description="Inventory ledger: current stock levels backed by an append-only movement log",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["health"])
async def health():
    return {
        "message": "Stock Management API",
        "version": settings.app_version,
        "status": "running",
    }


# Catalog collaborator (create-only)
app.include_router(categories_router, prefix="/api/categories", tags=["categories"])
app.include_router(products_router, prefix="/api/products", tags=["products"])

# Ledger and read views
app.include_router(inventory_router, prefix="/api/inventory", tags=["inventory"])
app.include_router(movements_router, prefix="/api/stock-movements", tags=["stock-movements"])
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=settings.port, reload=True)
