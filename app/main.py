from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
import time

from app.config import settings
from app.logging import logger

# Fail fast when the managed backend is not configured
settings.require()

from app.database import Base, engine
from app.exceptions import DriveError, UnauthenticatedError
from app.models import file, folder, permission  # noqa: F401  register tables
from app.routers import auth, files
from app.schemas.auth import CurrentUser
from app.utils.auth import get_current_user

app = FastAPI(
    title="Drive",
    description="Backend for the drive web client: auth, files, folders, trash and sharing",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

logger.info(f"Server starting... Version: {settings.APP_VERSION}, Debug: {settings.DEBUG}")

allowed_origins = [
    "https://drive-clone-frontend-sand.vercel.app",
    "http://localhost:5173",          # Vite dev server
]

if settings.CORS_ORIGINS:
    allowed_origins.extend(o.strip().rstrip("/") for o in settings.CORS_ORIGINS.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info({
        "request": {"url": str(request.url), "method": request.method},
        "status": response.status_code,
        "process Time": process_time,
    })
    return response


@app.exception_handler(DriveError)
async def drive_error_handler(request: Request, exc: DriveError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} {exc.details}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # malformed ids, bodies and query values are plain bad requests
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"{request.method} {request.url.path} database error: {exc}")
    return JSONResponse(status_code=500, content={"error": "A database error occurred."})


app.include_router(auth.router, tags=["Authentication"])
app.include_router(files.router, tags=["Files"])


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Backend Server is Running!"


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "message": "Drive API is running"
    }


@app.get("/protected-route", response_class=PlainTextResponse)
async def protected_route(user: CurrentUser = Depends(get_current_user)):
    return f"Welcome user {user.email}! You have accessed a protected route."


@app.on_event("startup")
async def startup_event():
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")
    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")
