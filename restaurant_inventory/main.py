from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from restaurant_inventory.core.db import init_db, close_db
from restaurant_inventory.api.v1.inventory import router as inventory_router
from restaurant_inventory.core.config import PROJECT_NAME, VERSION
from restaurant_inventory.core.exception_handlers import setup_exception_handlers

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    print(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db()
    yield
    await close_db()
    print(f"{PROJECT_NAME} stopped.")

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.include_router(inventory_router, prefix="/api/v1/inventory", tags=["Inventory Accounting"])

setup_exception_handlers(app)

@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME, "version": VERSION}
