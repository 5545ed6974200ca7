import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import mealcoupons.models  # noqa: F401

from mealcoupons.core.config import settings
from mealcoupons.routers.auth import router as auth_router
from mealcoupons.routers.coupons import router as coupons_router
from mealcoupons.routers.events import router as events_router
from mealcoupons.routers.me import router as me_router
from mealcoupons.routers.redeem import router as redeem_router
from mealcoupons.routers.stats import router as stats_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Meal Coupons")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Scanner and dashboard clients read `error`, not FastAPI's default `detail`
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"error": f"{field}: {msg}" if field else msg})


# Auth
app.include_router(auth_router)
app.include_router(me_router)

# Events + coupons
app.include_router(events_router)
app.include_router(coupons_router)

# Scanning
app.include_router(redeem_router)

# Reporting
app.include_router(stats_router)
