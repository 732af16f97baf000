"""
Health and readiness endpoints for the orders service.

``/health`` and ``/health/live`` answer without touching dependencies;
``/health/ready`` pings the database the service was started with and looks
at local disk and memory headroom.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.engine import Engine
from typing import Dict, Any
from datetime import datetime, timezone
from enum import Enum
import time
import psutil
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"


class ServiceHealth:

    def __init__(self, service_name: str, version: str = "1.0.0"):
        self.service_name = service_name
        self.version = version
        self.start_time = time.time()
        self.checks_performed = 0

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health", status_code=status.HTTP_200_OK)
        async def health_check() -> Dict[str, Any]:
            return {
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "timestamp": _now(),
            }

        @router.get("/health/live", status_code=status.HTTP_200_OK)
        async def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        def readiness(request: Request) -> JSONResponse:
            checks = self.readiness_checks(request.app.state.engine)
            overall = self.overall_status(checks)
            status_code = (
                status.HTTP_503_SERVICE_UNAVAILABLE
                if overall == HealthStatus.FAIL
                else status.HTTP_200_OK
            )
            return JSONResponse(
                status_code=status_code,
                content={
                    "status": overall,
                    "serviceId": self.service_name,
                    "version": self.version,
                    "checks": checks,
                    "timestamp": _now(),
                },
            )

        @router.get("/metrics")
        async def metrics() -> Dict[str, Any]:
            process = psutil.Process()
            memory = process.memory_info()
            return {
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": time.time() - self.start_time,
                "checks_performed": self.checks_performed,
                "timestamp": _now(),
                "system": {
                    "memory_rss_bytes": memory.rss,
                    "memory_vms_bytes": memory.vms,
                    "num_threads": process.num_threads(),
                },
            }

        return router

    def readiness_checks(self, engine: Engine) -> Dict[str, Dict[str, Any]]:
        self.checks_performed += 1
        return {
            "database:connectivity": self._check_database(engine),
            "storage:disk_space": self._check_disk_space(),
            "system:memory": self._check_memory(),
        }

    def _check_database(self, engine: Engine) -> Dict[str, Any]:
        try:
            start_time = time.time()
            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            response_time = (time.time() - start_time) * 1000
            return {
                "status": HealthStatus.PASS,
                "componentType": "datastore",
                "observedValue": f"{response_time:.2f}",
                "observedUnit": "ms",
                "time": _now(),
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": HealthStatus.FAIL,
                "componentType": "datastore",
                "output": "database unreachable",
                "time": _now(),
            }

    def _check_disk_space(self) -> Dict[str, Any]:
        free_gb = psutil.disk_usage('/').free / (1024 ** 3)
        if free_gb < 1:
            status_val = HealthStatus.FAIL
        elif free_gb < 5:
            status_val = HealthStatus.WARN
        else:
            status_val = HealthStatus.PASS
        return {
            "status": status_val,
            "componentType": "system",
            "observedValue": f"{free_gb:.2f}",
            "observedUnit": "GB",
            "time": _now(),
        }

    def _check_memory(self) -> Dict[str, Any]:
        available_mb = psutil.virtual_memory().available / (1024 ** 2)
        if available_mb < 100:
            status_val = HealthStatus.FAIL
        elif available_mb < 500:
            status_val = HealthStatus.WARN
        else:
            status_val = HealthStatus.PASS
        return {
            "status": status_val,
            "componentType": "system",
            "observedValue": f"{available_mb:.2f}",
            "observedUnit": "MB",
            "time": _now(),
        }

    @staticmethod
    def overall_status(checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        statuses = [check.get("status", HealthStatus.PASS) for check in checks.values()]
        if HealthStatus.FAIL in statuses:
            return HealthStatus.FAIL
        if HealthStatus.WARN in statuses:
            return HealthStatus.WARN
        return HealthStatus.PASS
