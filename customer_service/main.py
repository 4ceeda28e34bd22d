import time
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.metrics import REQUESTS, LATENCY
from app.core.store import MalformedRecordError
from db import create_redis_client
from admin_routes import router as admin_router
from customer_routes import router as customer_router

# Initialize Structlog
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    logger_factory=structlog.PrintLoggerFactory(),
)
logger = structlog.get_logger()

SERVICE_NAME = settings.SERVICE_NAME


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("system_startup_initiated", service=SERVICE_NAME)

    app.state.redis = create_redis_client()
    try:
        await app.state.redis.ping()
        logger.info("connectivity_check", service="redis", status="connected")
    except RedisError as r_err:
        # Let it start; /ready reports the failure
        logger.error("connectivity_check", service="redis", status="failed", error=str(r_err))

    logger.info("system_startup_complete")
    yield

    await app.state.redis.aclose()
    logger.info("shutdown_complete")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Customer records with business/token link indexes.",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MalformedRecordError)
async def malformed_record_handler(request: Request, exc: MalformedRecordError):
    logger.error("malformed_record", key=exc.key, error=exc.reason, endpoint=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Malformed customer record", "key": exc.key})


@app.exception_handler(RedisError)
async def store_unavailable_handler(request: Request, exc: RedisError):
    logger.error("store_unavailable", error=str(exc), endpoint=request.url.path)
    return JSONResponse(status_code=503, content={"detail": "Store unavailable"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", error=str(exc), endpoint=request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error", "error": str(exc)})


# Middleware
@app.middleware("http")
async def add_metrics_and_logs(request: Request, call_next):
    start_time = time.time()
    correlation_id = request.headers.get("X-Correlation-Id") or request.headers.get("traceparent")

    response = await call_next(request)
    process_time = time.time() - start_time
    status_code = response.status_code

    REQUESTS.labels(service=SERVICE_NAME, endpoint=request.url.path, method=request.method, status=status_code).inc()
    LATENCY.labels(service=SERVICE_NAME, endpoint=request.url.path).observe(process_time)

    logger.bind(
        service=SERVICE_NAME, correlation_id=correlation_id, status_code=status_code,
        method=request.method, endpoint=request.url.path, latency_ms=round(process_time * 1000, 2)
    ).info("http_request_completed" if status_code < 400 else "http_request_failed")

    return response


# Endpoints
@app.get("/metrics")
def metrics(): return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

@app.get("/ready")
async def ready(request: Request):
    try:
        await request.app.state.redis.ping()
    except RedisError as e:
        logger.error("readiness_check_failed", error=str(e))
        raise HTTPException(status_code=503, detail="Dependencies unavailable")
    return {"status": "ok"}

@app.get("/health")
def health(): return {"status": "ok", "service": SERVICE_NAME}


app.include_router(customer_router)
app.include_router(admin_router)
