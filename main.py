import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from db import create_db_and_tables
from routers import admin, auth, feedback, messages, swaps, users
from seed_admin import seed_admin_from_env

DEBUG = os.getenv("APP_DEBUG", "false").lower() == "true"

logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("SkillSwap")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    seed_admin_from_env()
    logger.info("Starting app in %s mode", "DEBUG" if DEBUG else "PRODUCTION")
    yield
    logger.info("Shutting down")


app = FastAPI(title="SkillSwap", debug=DEBUG, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info("%s %s %s in %.0fms", request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    messages = []
    for error in errors:
        loc = ".".join(str(part) for part in error.get("loc", []) if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))

    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(messages) or "Invalid request", "errors": jsonable_errors(errors)},
    )


def jsonable_errors(errors):
    # ctx may carry exception objects that JSON can't encode
    return [{k: v for k, v in error.items() if k in ("loc", "msg", "type")} for error in errors]


@app.exception_handler(Exception)
async def log_exceptions(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/health")
def health_check():
    return {"status": "healthy"}


app.include_router(auth.router, prefix="/api/auth")
app.include_router(users.router, prefix="/api/users")
app.include_router(swaps.router, prefix="/api/swaps")
app.include_router(feedback.router, prefix="/api/feedback")
app.include_router(messages.router, prefix="/api/messages")
app.include_router(admin.router, prefix="/api/admin")
