from fastapi import APIRouter
from sqlalchemy import text

from wms.core.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "WMS Sellus Sync",
        "sellus_configured": bool(settings.SELLUS_BASE_URL and settings.SELLUS_API_KEY),
    }


@router.get("/health/db")
async def database_health():
    """Check database connectivity and tables"""
    try:
        from wms.database import async_session

        async with async_session() as session:
            await session.execute(text("SELECT 1"))

            tables_result = await session.execute(
                text("SELECT table_name FROM information_schema.tables WHERE table_schema = 'public' ORDER BY table_name")
            )
            tables = [row[0] for row in tables_result]

            return {
                "status": "healthy",
                "database": "connected",
                "tables_count": len(tables),
                "tables": tables
            }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "error",
            "error": str(e)
        }
