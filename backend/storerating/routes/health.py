import logging

from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from storerating.core.errors import InternalError


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health(request: Request):
    try:
        with request.app.state.db.session() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc)
        raise InternalError("Database unavailable") from exc
    return {"status": "ok"}
