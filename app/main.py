import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.endpoints.api import api_router
from app.core.config import settings
from app.schemas.base import ApiResponse
from app.services.migration_run_service import MigrationFailure

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Yard Inventory API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in settings.CORS_ALLOW_ORIGINS.split(",") if o] or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MigrationFailure)
async def migration_failure_handler(request: Request, exc: MigrationFailure) -> JSONResponse:
    logger.warning(
        "migration_request_refused path=%s code=%s status=%s",
        request.url.path,
        exc.code,
        exc.status_code,
    )
    body = ApiResponse[dict](success=False, message=exc.message, data=exc.to_detail())
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "up"}
