from fastapi import FastAPI, Request
import asyncio
import logging
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from promisepoint.core.config import settings
from promisepoint.core.errors import PromisePointError
from promisepoint.core.logging import setup_logging
from promisepoint.api.routes.loan_types import router as loan_types_router
from promisepoint.api.routes.loans import router as loans_router
from promisepoint.api.routes.ops import router as ops_router
from promisepoint.api.routes.audit import router as audit_router
from promisepoint.services.background import notification_dispatch_loop, reconcile_loop

setup_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)

app = FastAPI(title="PromisePoint loans and pickups")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PromisePointError)
async def _domain_error(request: Request, exc: PromisePointError):
    if exc.status_code >= 409:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.code, "message": exc.message})


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(loan_types_router)
app.include_router(loans_router)
app.include_router(ops_router)
app.include_router(audit_router)

@app.on_event("startup")
async def _start_background_loops():
    if settings.sms_enabled:
        asyncio.create_task(notification_dispatch_loop())
    if settings.reconcile_enabled:
        asyncio.create_task(reconcile_loop())
