from __future__ import annotations

from c6os.api.routes.agents import router as agents_router
from c6os.api.routes.health import router as health_router
from c6os.api.routes.index import router as index_router
from c6os.api.routes.system import router as system_router

__all__ = ["agents_router", "health_router", "index_router", "system_router"]
