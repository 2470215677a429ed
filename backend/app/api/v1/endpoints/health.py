from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.config import settings
from app.core.dependencies import get_employee_service
from app.services.employee_service import EmployeeService

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(service: EmployeeService = Depends(get_employee_service)):  # noqa: B008
    services: dict[str, str] = {}

    try:
        if service.store.initialized:
            ok = await service.check_connection()
            services["document_store"] = "ok" if ok else "error"
        elif service.store.configured:
            services["document_store"] = "error"
        else:
            services["document_store"] = "not_configured"
    except Exception:
        services["document_store"] = "error"

    services["result_cache"] = "ok" if service.cache.errors == 0 else "degraded"

    all_ok = services["document_store"] in ("ok", "not_configured")

    return {
        "status": "healthy" if all_ok else "degraded",
        "version": settings.APP_VERSION,
        "services": services,
        "cache": service.cache.stats(),
    }


@router.get("/ready")
async def readiness_check():
    return {"ready": True}
