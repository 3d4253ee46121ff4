import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from allo.core.config import Settings
from allo.core.logging import setup_logging
from allo.core.migrations import RunMigrations
from allo.db import GetSessionFactory
from allo.modules.auth.router import router as auth_router
from allo.modules.core.router import router as core_router
from allo.modules.family.router import router as family_router
from allo.modules.notify.channels.factory import BuildChannelBackend
from allo.modules.notify.dispatcher import ConfigureDispatcher
from allo.modules.notify.router import router as notify_router
from allo.modules.tasks.supervisor import StartSupervisor, StopSupervisor

setup_logging()

logger = logging.getLogger("app.request")
startup_logger = logging.getLogger("app.startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if Settings.RunMigrations:
        await run_in_threadpool(RunMigrations)
    backend = BuildChannelBackend(Settings)
    ConfigureDispatcher(backend)
    StartSupervisor(GetSessionFactory(), Settings)
    startup_logger.info("startup complete")
    try:
        yield
    finally:
        StopSupervisor()
        backend.Close()
        startup_logger.info("shutdown complete")


app = FastAPI(title="Allo API", lifespan=lifespan)

allowed_origins = os.getenv("ALLOWED_ORIGINS", "")
origin_list = [origin.strip() for origin in allowed_origins.split(",") if origin.strip()]
if origin_list:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_logger(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = int((time.perf_counter() - start) * 1000)

    parts = [f"{request.method} {request.url.path}"]
    if request.url.query:
        parts.append(f"query={request.url.query}")

    status = response.status_code
    if status >= 400:
        if status == 404:
            parts.append("ERROR: endpoint not found")
        elif status >= 500:
            parts.append("ERROR: server error")
        else:
            parts.append("ERROR: client error")

    parts.append(f"status={status}")
    parts.append(f"{duration_ms}ms")

    log_msg = " | ".join(parts)
    if status >= 500:
        logger.error(log_msg)
    elif status >= 400:
        logger.warning(log_msg)
    else:
        logger.info(log_msg)

    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(core_router)
app.include_router(auth_router)
app.include_router(family_router)
app.include_router(notify_router)
