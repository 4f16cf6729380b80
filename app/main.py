import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from app.database import engine, Base
from app.models.coupon import Coupon  # noqa: F401  (registers the table)
from app.models.claim_history import ClaimHistory  # noqa: F401
from app.api.coupons import router as coupons_router
from app.api.history import router as history_router
from app.services.errors import CouponServiceError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)

ENV = os.getenv("ENV", "prod")

app = FastAPI(
    title="Coupon Claim API",
    description="Distributes coupons to visitors in a round-robin manner",
    docs_url=None if ENV == "prod" else "/docs",
    redoc_url=None if ENV == "prod" else "/redoc",
)

origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(coupons_router)
app.include_router(history_router)


@app.get("/")
def home():
    return {"message": "Coupon Claim API is running"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.exception_handler(CouponServiceError)
async def coupon_service_error_handler(request: Request, exc: CouponServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"success": False, "message": "Server error"}
    # Internal detail only ever leaves the server in development
    if os.getenv("ENV", "prod") == "dev":
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
