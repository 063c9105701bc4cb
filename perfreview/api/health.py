from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from perfreview.core.config import settings
from perfreview.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Liveness plus a database round trip."""
    db.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "env": settings.APP_ENV,
        "database": db.get_bind().dialect.name,
    }
