from .schedule_router import router as schedule_router
from .realtime_router import router as realtime_router

__all__ = ["schedule_router", "realtime_router"]
