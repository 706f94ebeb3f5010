# backend/teahouse/main.py
import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from teahouse.api import (
    auth_router,
    employees_router,
    expenses_router,
    menu_router,
    orders_router,
    revenue_router,
    tables_router,
)
from teahouse.errors import TeahouseError
from teahouse.storage import SQLAlchemyStorage

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Teahouse Floor Backend")

# Allow CORS for local dev (set CORS_ORIGINS in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "*").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.storage = SQLAlchemyStorage(os.getenv("APP_DATABASE_URL", "sqlite:///teahouse.db"))

for module in (auth_router, employees_router, orders_router, menu_router, tables_router, expenses_router, revenue_router):
    app.include_router(module.router)


@app.exception_handler(TeahouseError)
async def teahouse_error_handler(request: Request, exc: TeahouseError):
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health", summary="Liveness probe")
async def health():
    return {"status": "ok"}
