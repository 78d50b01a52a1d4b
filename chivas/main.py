import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chivas.config import settings
from chivas.database import Base, engine
from chivas.exceptions import ChivasError
from chivas.auth import router as auth_router
from chivas.catalog import router as catalog_router
from chivas.bookings import router as bookings_router
from chivas.reviews import router as reviews_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("%s started (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Chiva excursion booking API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ChivasError)
async def handle_chivas_error(request: Request, exc: ChivasError):
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error": type(exc).__name__}
    )

# Include routers
app.include_router(
    auth_router.router,
    prefix=f"{settings.API_V1_STR}/auth",
    tags=["Authentication"]
)

app.include_router(
    catalog_router.router,
    prefix=settings.API_V1_STR,
    tags=["Destinations & Trips"]
)

app.include_router(
    bookings_router,
    prefix=settings.API_V1_STR,
    tags=["Reservations & Tickets"]
)

app.include_router(
    reviews_router.router,
    prefix=settings.API_V1_STR,
    tags=["Reviews"]
)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Chiva Excursion Booking API",
        "version": "1.0.0",
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
