from fastapi import APIRouter, Depends
import time

from ....api.deps import get_hub
from ....core.database import check_db_connection
from ....services.broadcast_hub import BroadcastHub
from ....utils.timezone import get_timezone_info

router = APIRouter()


@router.get("/health")
async def get_health(hub: BroadcastHub = Depends(get_hub)):
    """Database reachability, live connections and host load"""
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "service": "examguard-api",
        "services": {},
        "connections": hub.stats(),
        "timezone": get_timezone_info(),
    }

    if await check_db_connection():
        health_status["services"]["database"] = "healthy"
    else:
        health_status["services"]["database"] = "unreachable"
        health_status["status"] = "unhealthy"

    try:
        import psutil
        health_status["system"] = {
            "cpu_percent": psutil.cpu_percent(),
            "memory_percent": psutil.virtual_memory().percent,
            "disk_percent": psutil.disk_usage('/').percent
        }
    except Exception as e:
        health_status["system"] = f"error: {str(e)}"

    return health_status
