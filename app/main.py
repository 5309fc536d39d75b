import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import models  # noqa: F401  registers tables on Base.metadata
from app.core.config import settings
from app.core.database import Base, engine
from app.core.errors import AppError
from app.routers import api_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

TAGS_METADATA = [
    {"name": "Products", "description": "Shop products, their media and their reviews."},
    {"name": "Upload", "description": "Multipart media upload to the media store (images and videos)."},
    {"name": "Events", "description": "Shop events and promotions."},
    {"name": "Blogs", "description": "Blog posts, managed by admins."},
    {"name": "Bookings", "description": "Appointment bookings with e-mail confirmation."},
    {"name": "Public reviews", "description": "Anonymous site reviews and helpful votes."},
]

API_DESCRIPTION = """
# HaoChapChap API

Every response carries `success`. Errors look like:

```json
{"success": false, "message": "Product not found with this id"}
```

Protected routes need `Authorization: Bearer <token>`. Roles: `user`, `seller`, `admin`.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified (media backend: %s)", settings.MEDIA_BACKEND)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=API_DESCRIPTION,
    openapi_tags=TAGS_METADATA,
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

app.include_router(api_router, prefix=settings.API_V2_PREFIX)

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    return _error(400, f"{field}: {first.get('msg')}" if field else str(first.get("msg")))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}
