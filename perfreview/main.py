import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from perfreview.api.activity import router as activity_router
from perfreview.api.appeals import router as appeals_router
from perfreview.api.cycles import router as cycles_router
from perfreview.api.dashboard import router as dashboard_router
from perfreview.api.feedback import router as feedback_router
from perfreview.api.health import router as health_router
from perfreview.api.me import router as me_router
from perfreview.api.meetings import router as meetings_router
from perfreview.api.reviews import router as reviews_router
from perfreview.core.config import settings
from perfreview.core.errors import ReviewError
from perfreview.core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Performance Review Cycle Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


@app.exception_handler(ReviewError)
async def review_error_handler(request: Request, exc: ReviewError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


app.include_router(health_router)
app.include_router(me_router)
app.include_router(cycles_router)
app.include_router(reviews_router)
app.include_router(feedback_router)
app.include_router(meetings_router)
app.include_router(appeals_router)
app.include_router(activity_router)
app.include_router(dashboard_router)
