from tokendir.api.routes.dictionary import router as dictionary_router
from tokendir.api.routes.health import router as health_router
from tokendir.api.routes.stats import router as stats_router

__all__ = ["dictionary_router", "health_router", "stats_router"]
