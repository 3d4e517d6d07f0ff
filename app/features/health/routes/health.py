from fastapi import APIRouter, status
from sqlalchemy import text

from app.platform.db.session import SessionLocal
from app.platform.response import api_response


router = APIRouter()

@router.get("/health", tags=["health"])
def health_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception:
        database = "unavailable"
    finally:
        db.close()

    return api_response(
        data={"status": "ok", "service": "Accessibility Scanner", "database": database},
        message="Service is healthy",
        status_code=status.HTTP_200_OK,
    )
