from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlmodel import SQLModel

from cardclash.core.config import settings
from cardclash.core.db import engine
from cardclash.core.errors import InvariantViolationError, StoreUnavailableError
from cardclash.models import battle, battle_participant, battle_turn, card  # noqa: F401
from cardclash.utils.exception_handlers import (
    general_exception_handler,
    http_exception_handler,
    invariant_violation_handler,
    store_unavailable_handler,
    validation_exception_handler,
)
from cardclash.utils.router_discovery import register_routers


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncGenerator[None, FastAPI]:
    if settings.is_dev:
        # Production schemas are managed by alembic
        async with engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)
        logger.info("Created missing tables for the dev database")

    yield

    await engine.dispose()


app = FastAPI(
    title="CardClash Battle API",
    lifespan=app_lifespan,
    servers=[
        {"url": f"http://{settings.api_host}:{settings.api_port}", "description": "Local server"}
    ],
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


register_routers(app)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(InvariantViolationError, invariant_violation_handler)
app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def healthz() -> str:
    return "OK"
