from fastapi import FastAPI, File, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
from contextlib import asynccontextmanager
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from loguru import logger
import math
import time
import asyncio

from config.settings import settings
from restaurant_finder.classifier import ImageClassifier
from restaurant_finder.db.postgres import (
    count_restaurants,
    create_pool,
    find_nearby,
    get_restaurant_by_id,
    list_restaurants,
    search_by_cuisine,
)
from restaurant_finder.models.restaurant import (
    ErrorResponse,
    ImageSearchResponse,
    NearbyResponse,
    Restaurant,
    RestaurantPage,
)
from restaurant_finder.utils.uploads import stored_upload

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# Global shutdown event
shutdown_event = asyncio.Event()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle.

    Startup:
    - Initialize database connection pool
    - Initialize the image classifier client

    Shutdown:
    - Close database connections
    - Close the classifier client
    """
    logger.info("Starting Restaurant Finder API...")
    shutdown_event.clear()

    try:
        dsn = settings.postgres_dsn
        logger.info(f"Connecting to PostgreSQL: {dsn.split('@')[1] if '@' in dsn else dsn}")
        app.state.db_pool = await create_pool(dsn, settings.pool_min_size, settings.pool_max_size)
        logger.info("PostgreSQL connection pool initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
        app.state.db_pool = None

    app.state.classifier = ImageClassifier(settings.classifier_url, timeout=settings.classifier_timeout)
    logger.info(f"Image classifier endpoint: {settings.classifier_url}")

    logger.info("Application startup complete. Ready to serve requests.")

    yield

    logger.info("Initiating graceful shutdown...")
    shutdown_event.set()

    if app.state.db_pool:
        try:
            await app.state.db_pool.close()
            logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")

    await app.state.classifier.aclose()
    logger.info("Graceful shutdown complete. Goodbye!")


app = FastAPI(
    title="Restaurant Finder API",
    lifespan=lifespan,
    version="1.0.0",
    description="Restaurant lookup, pagination, proximity and photo-based cuisine search"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics
REQUESTS = Counter('api_requests_total', 'Total API requests', ['endpoint', 'status'])
REQUEST_LATENCY = Histogram('api_request_latency_seconds', 'API request latency in seconds', ['endpoint'])


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    route = request.scope.get("route")
    endpoint = route.path if route is not None else "unmatched"
    REQUESTS.labels(endpoint=endpoint, status=str(response.status_code)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start)
    return response


def _error(status_code: int, message: str, error: Optional[Exception] = None) -> JSONResponse:
    body = ErrorResponse(message=message, error=str(error) if error is not None else None)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _positive_int(value: Optional[str], default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _finite_float(value: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value}")
    return number


def _require_pool(request: Request):
    pool = request.app.state.db_pool
    if pool is None:
        raise ConnectionError("Database connection pool is not initialized")
    return pool


@app.get("/api/restaurantss/{restaurant_id}", response_model=Restaurant)
@app.get("/api/restaurants/{restaurant_id}", response_model=Restaurant, include_in_schema=False)
async def get_restaurant(restaurant_id: str, request: Request):
    try:
        document = await get_restaurant_by_id(_require_pool(request), str(restaurant_id))
        if document is None:
            logger.info(f"No restaurant found for id {restaurant_id}")
            return _error(404, "Restaurant Not Found")
        return Restaurant.model_validate(document)
    except Exception as e:
        logger.error(f"Server error fetching restaurant {restaurant_id}: {e}")
        return _error(500, "Server Error", e)


@app.get("/api/restaurants", response_model=RestaurantPage)
async def get_restaurants(request: Request, page: Optional[str] = None, limit: Optional[str] = None):
    page_number = _positive_int(page, DEFAULT_PAGE)
    page_size = min(_positive_int(limit, DEFAULT_LIMIT), settings.max_page_size)
    try:
        pool = _require_pool(request)
        total = await count_restaurants(pool)
        # pages past the end never reach the OFFSET query
        if (page_number - 1) * page_size >= total:
            documents = []
        else:
            documents = await list_restaurants(pool, page_number, page_size)
        return RestaurantPage(
            totalRestaurants=total,
            currentPage=page_number,
            totalPages=math.ceil(total / page_size),
            restaurants=[Restaurant.model_validate(d) for d in documents],
        )
    except Exception as e:
        logger.error(f"Error fetching restaurants: {e}")
        return _error(500, "Server Error", e)


@app.get("/api/nearby", response_model=NearbyResponse)
async def get_nearby(
    request: Request,
    latitude: Optional[str] = None,
    longitude: Optional[str] = None,
    distance: Optional[str] = None
):
    if not latitude or not longitude or not distance:
        return _error(400, "Latitude, longitude, and distance are required!")

    try:
        lat = _finite_float(latitude)
        lon = _finite_float(longitude)
        radius_km = _finite_float(distance)
    except ValueError:
        return _error(400, "Latitude, longitude, and distance must be numbers!")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180) or radius_km < 0:
        return _error(400, "Latitude, longitude, or distance out of range!")

    try:
        total, documents = await find_nearby(
            _require_pool(request), lon, lat, radius_km * 1000, settings.max_results
        )
        logger.info(f"Nearby search ({lat}, {lon}) within {radius_km}km: {total} matches")
        return NearbyResponse(
            total=total,
            restaurants=[Restaurant.model_validate(d) for d in documents],
        )
    except Exception as e:
        logger.error(f"Error fetching nearby restaurants: {e}")
        return _error(500, "Server Error", e)


@app.post("/api/image-search", response_model=ImageSearchResponse)
async def image_search(request: Request, image: Optional[UploadFile] = File(None)):
    if image is None or not image.filename:
        return _error(400, "No image uploaded!")

    try:
        async with stored_upload(image, settings.upload_dir) as image_path:
            detected_food = await request.app.state.classifier.classify(image_path)
        total, documents = await search_by_cuisine(
            _require_pool(request), detected_food, settings.max_results
        )
        logger.info(f"Image search detected '{detected_food}': {total} matches")
        return ImageSearchResponse(
            detectedFood=detected_food,
            total=total,
            restaurants=[Restaurant.model_validate(d) for d in documents],
        )
    except Exception as e:
        logger.error(f"Error processing image search: {e}")
        return _error(500, "Error processing image", e)
    finally:
        await image.close()


@app.get("/health")
async def health():
    """
    Component health check.
    Returns overall health status and component statuses.
    """
    health_status = {
        "status": "healthy",
        "components": {
            "postgres": "unknown",
            "classifier": settings.classifier_url
        }
    }

    if app.state.db_pool:
        try:
            async with app.state.db_pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            health_status["components"]["postgres"] = "healthy"
        except Exception as e:
            logger.warning(f"PostgreSQL health check failed: {e}")
            health_status["components"]["postgres"] = "unhealthy"
            health_status["status"] = "degraded"
    else:
        health_status["components"]["postgres"] = "not_initialized"
        health_status["status"] = "degraded"

    return health_status


@app.get("/health/live")
def liveness():
    """Liveness probe - the process is up and not shutting down."""
    if shutdown_event.is_set():
        return JSONResponse(status_code=503, content={"status": "shutting_down"})
    return {"status": "alive"}


@app.get("/health/ready")
async def readiness():
    """Readiness probe - the database answers queries."""
    if shutdown_event.is_set():
        return JSONResponse(status_code=503, content={"status": "shutting_down"})

    postgres_ready = False
    if app.state.db_pool:
        try:
            async with app.state.db_pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            postgres_ready = True
        except Exception as e:
            logger.warning(f"PostgreSQL readiness check failed: {e}")

    if postgres_ready:
        return {"status": "ready", "postgres": "ready"}
    return JSONResponse(status_code=503, content={"status": "not_ready", "postgres": "not_ready"})


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def main():
    import uvicorn
    from restaurant_finder.utils.log_setup import setup_logging

    setup_logging(settings.log_level)
    logger.info(f"Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_keep_alive=65,
        timeout_graceful_shutdown=30,
    )


if __name__ == "__main__":
    main()
