"""
Health Check Endpoints

- /health        - liveness plus a database round trip
- /health/ready  - readiness: database reachable and certificate storage writable
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any
import os
import time

from sqlalchemy import text

from app.core.config import settings
from app.core.database import get_session_local
from app.core.logging_config import logger


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity and that the certificate tables exist"""
    start = time.time()
    try:
        session_factory = get_session_local()
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
            try:
                await session.execute(text("SELECT COUNT(*) FROM certificates"))
                tables_ok = True
            except Exception:
                tables_ok = False

        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": tables_ok,
        }
    except Exception as e:
        logger.error(f"[HealthCheck] Database check failed: {e}")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start) * 1000, 2),
            "tables_ready": False,
            "error": str(e),
        }


def check_storage() -> Dict[str, Any]:
    path = settings.CERTIFICATE_DIR
    writable = path.is_dir() and os.access(path, os.W_OK)
    return {"status": "healthy" if writable else "unhealthy", "path": str(path)}


@router.get("")
async def health():
    """Liveness with a database check"""
    database = await check_database()
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "service": "achievr-backend",
        "timestamp": datetime.utcnow().isoformat(),
        "database": database,
    }


@router.get("/ready")
async def ready():
    checks = {"database": await check_database(), "storage": check_storage()}
    healthy = all(c["status"] == "healthy" for c in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "not_ready",
            "checks": checks,
            "email_configured": settings.email_configured,
        },
    )
