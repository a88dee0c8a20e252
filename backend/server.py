import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)

# .env next to this file; settings are read when classroom_module is imported below
env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env")
load_dotenv(dotenv_path=env_path)

from backend.classroom_module import init_classroom_module, routers  # noqa: E402
from backend.classroom_module.config import settings  # noqa: E402
from backend.classroom_module.errors import AppError  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing classroom module...")
    init_classroom_module()
    logger.info("Classroom module initialized.")
    yield
    logger.info("Shutting down...")


app = FastAPI(title="Classroom Management API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    body = {"message": exc.detail}
    if isinstance(exc, AppError) and exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation failed", "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Server error"})


@app.get("/api/health")
def health():
    return {"status": "ok", "message": "Server is running"}


for router in routers:
    app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    reload_enabled = os.getenv("BACKEND_RELOAD", "false").lower() == "true"
    try:
        uvicorn.run(
            "backend.server:app" if reload_enabled else app,
            host=settings.backend_host,
            port=settings.backend_port,
            reload=reload_enabled,
        )
    except OSError as e:
        if "address already in use" in str(e).lower():
            logger.error(
                f"Port {settings.backend_port} is already in use. Stop the old process or set BACKEND_PORT to another port."
            )
        raise
