from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routers import (
    chat,
    data_upload,
    files,
    health,
    indexer,
    messages,
    session,
)
from case_chat.exception.custom_exception import (
    CaseChatException,
    ConfigurationError,
    DeadlineExceededError,
    TransportError,
    UploadValidationError,
)
from case_chat.logger import GLOBAL_LOGGER as log
from db.database import init_db


# Use lifespan instead of deprecated on_event
@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("Application startup initiated")
    await init_db()
    yield
    log.info("Application shutdown")


app = FastAPI(title="Case Document Chat Backend", version="1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id"],
)


# Error responses are short plain-text messages
@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(UploadValidationError)
async def upload_validation_error(request: Request, exc: UploadValidationError):
    log.warning("Upload rejected | path=%s | error=%s", request.url.path, str(exc))
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(ConfigurationError)
async def configuration_error(request: Request, exc: ConfigurationError):
    log.error("Configuration error | path=%s | error=%s", request.url.path, exc.describe())
    return PlainTextResponse(str(exc), status_code=400)


@app.exception_handler(DeadlineExceededError)
async def deadline_exceeded(request: Request, exc: DeadlineExceededError):
    log.error("Request deadline exceeded | path=%s", request.url.path)
    return PlainTextResponse("Request timed out.", status_code=504)


@app.exception_handler(TransportError)
async def transport_error(request: Request, exc: TransportError):
    log.error("Dependency failure | path=%s | error=%s", request.url.path, exc.describe())
    return PlainTextResponse(f"Internal server error: {exc}", status_code=500)


@app.exception_handler(CaseChatException)
async def case_chat_error(request: Request, exc: CaseChatException):
    log.error("Unhandled application error | path=%s | error=%s", request.url.path, exc.describe())
    return PlainTextResponse(f"Internal server error: {exc}", status_code=500)


# Router Registration
app.include_router(health.router, tags=["health"])
app.include_router(chat.router, tags=["chat"])
app.include_router(data_upload.router, tags=["upload"])
app.include_router(indexer.router, tags=["indexer"])
app.include_router(session.router, tags=["session"])
app.include_router(files.router, tags=["files"])
app.include_router(messages.router, tags=["messages"])


@app.get("/")
async def root():
    return {"message": "Backend is running"}
