"""
Health and metrics endpoints.

- ``/health``          summary, always 200 while the process serves requests
- ``/health/live``     liveness probe
- ``/health/ready``    readiness: database, cache, disk, memory, upload dir
- ``/health/startup``  startup: schema present, configuration sane
- ``/metrics``         process level metrics
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from typing import Callable, Dict, Any, Optional
import os
import time
import redis
from datetime import datetime
from enum import Enum
import psutil
import logging

logger = logging.getLogger(__name__)

def _now() -> str:
    return datetime.utcnow().isoformat() + "Z"

class HealthStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"

class ServiceHealth:
    """
    Builds the health router for one service.

    ``engine_provider`` returns the SQLAlchemy engine used by the app so the
    readiness probe checks the same database the requests use.
    """

    def __init__(
        self,
        service_name: str,
        version: str = "1.0.0",
        engine_provider: Optional[Callable[[], Engine]] = None,
        redis_url: Optional[str] = None,
        upload_dir: Optional[str] = None,
        config_checks: Optional[Callable[[], list[str]]] = None,
    ):
        self.service_name = service_name
        self.version = version
        self.engine_provider = engine_provider
        self.redis_url = redis_url
        self.upload_dir = upload_dir
        self.config_checks = config_checks
        self.start_time = time.time()
        self.checks_performed = 0
        self.last_check_time = None

    def create_health_router(self) -> APIRouter:
        router = APIRouter(tags=["health"])

        @router.get("/health", status_code=status.HTTP_200_OK)
        async def health_check() -> Dict[str, Any]:
            return {
                "success": True,
                "message": "Server is healthy",
                "status": HealthStatus.PASS,
                "service": self.service_name,
                "version": self.version,
                "uptime_seconds": round(time.time() - self.start_time, 2),
                "timestamp": _now(),
            }

        @router.get("/health/live", status_code=status.HTTP_200_OK)
        async def liveness() -> Dict[str, Any]:
            return {"status": "alive"}

        @router.get("/health/ready")
        async def readiness() -> JSONResponse:
            checks = self.perform_readiness_checks()
            overall_status = self.calculate_overall_status(checks)
            status_code = (
                status.HTTP_503_SERVICE_UNAVAILABLE
                if overall_status == HealthStatus.FAIL
                else status.HTTP_200_OK
            )
            return JSONResponse(
                status_code=status_code,
                content={
                    "status": overall_status.value,
                    "version": self.version,
                    "releaseId": os.getenv("RELEASE_ID", "unknown"),
                    "checks": checks,
                    "serviceId": self.service_name,
                    "timestamp": _now(),
                },
            )

        @router.get("/health/startup")
        async def startup() -> JSONResponse:
            checks = self.perform_startup_checks()
            overall_status = self.calculate_overall_status(checks)
            if overall_status == HealthStatus.FAIL:
                return JSONResponse(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    content={"status": "starting", "checks": checks},
                )
            return JSONResponse(content={"status": "started", "checks": checks})

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
                    "cpu_percent": process.cpu_percent(),
                    "num_threads": process.num_threads()
                }
            }

        return router

    def perform_readiness_checks(self) -> Dict[str, Dict[str, Any]]:
        self.checks_performed += 1
        self.last_check_time = time.time()

        checks = {"database:connectivity": self._check_database()}
        if self.redis_url:
            checks["cache:connectivity"] = self._check_redis()
        if self.upload_dir:
            checks["storage:uploads"] = self._check_upload_dir()
        checks["storage:disk_space"] = self._check_disk_space()
        checks["system:memory"] = self._check_memory()
        return checks

    def perform_startup_checks(self) -> Dict[str, Dict[str, Any]]:
        return {
            "database:schema": self._check_schema(),
            "config:environment": self._check_environment(),
        }

    def _check_database(self) -> Dict[str, Any]:
        if self.engine_provider is None:
            return {"status": HealthStatus.WARN, "componentType": "datastore",
                    "output": "No database configured", "time": _now()}
        try:
            start_time = time.time()
            with self.engine_provider().connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            response_time = (time.time() - start_time) * 1000
            return {
                "status": HealthStatus.PASS,
                "componentType": "datastore",
                "observedValue": f"{response_time:.2f}ms",
                "observedUnit": "ms",
                "time": _now()
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {"status": HealthStatus.FAIL, "componentType": "datastore",
                    "output": str(e), "time": _now()}

    def _check_redis(self) -> Dict[str, Any]:
        try:
            start_time = time.time()
            client = redis.from_url(self.redis_url, socket_connect_timeout=1)
            client.ping()
            response_time = (time.time() - start_time) * 1000
            return {
                "status": HealthStatus.PASS,
                "componentType": "cache",
                "observedValue": f"{response_time:.2f}ms",
                "observedUnit": "ms",
                "time": _now()
            }
        except Exception as e:
            # rate limiting falls back to per-process counters (see build_limiter)
            return {"status": HealthStatus.WARN, "componentType": "cache",
                    "output": str(e), "time": _now()}

    def _check_upload_dir(self) -> Dict[str, Any]:
        writable = os.path.isdir(self.upload_dir) and os.access(self.upload_dir, os.W_OK)
        return {
            "status": HealthStatus.PASS if writable else HealthStatus.FAIL,
            "componentType": "storage",
            "output": "" if writable else f"{self.upload_dir} is not writable",
            "time": _now()
        }

    def _check_disk_space(self) -> Dict[str, Any]:
        try:
            free_gb = psutil.disk_usage(self.upload_dir or '/').free / (1024 ** 3)
            if free_gb < 1:
                status_val = HealthStatus.FAIL
            elif free_gb < 5:
                status_val = HealthStatus.WARN
            else:
                status_val = HealthStatus.PASS
            return {"status": status_val, "componentType": "system",
                    "observedValue": f"{free_gb:.2f}", "observedUnit": "GB", "time": _now()}
        except Exception as e:
            return {"status": HealthStatus.WARN, "componentType": "system",
                    "output": str(e), "time": _now()}

    def _check_memory(self) -> Dict[str, Any]:
        try:
            available_mb = psutil.virtual_memory().available / (1024 ** 2)
            if available_mb < 100:
                status_val = HealthStatus.FAIL
            elif available_mb < 500:
                status_val = HealthStatus.WARN
            else:
                status_val = HealthStatus.PASS
            return {"status": status_val, "componentType": "system",
                    "observedValue": f"{available_mb:.2f}", "observedUnit": "MB", "time": _now()}
        except Exception as e:
            return {"status": HealthStatus.WARN, "componentType": "system",
                    "output": str(e), "time": _now()}

    def _check_schema(self) -> Dict[str, Any]:
        if self.engine_provider is None:
            return {"status": HealthStatus.WARN, "componentType": "datastore",
                    "output": "No database configured", "time": _now()}
        try:
            inspector = inspect(self.engine_provider())
            missing = [t for t in ("users", "shipments") if not inspector.has_table(t)]
            if missing:
                return {"status": HealthStatus.FAIL, "componentType": "datastore",
                        "output": f"Missing tables: {', '.join(missing)}", "time": _now()}
            if not inspector.has_table("alembic_version"):
                return {"status": HealthStatus.WARN, "componentType": "datastore",
                        "output": "Migrations table not found", "time": _now()}
            return {"status": HealthStatus.PASS, "componentType": "datastore", "time": _now()}
        except Exception as e:
            return {"status": HealthStatus.FAIL, "componentType": "datastore",
                    "output": str(e), "time": _now()}

    def _check_environment(self) -> Dict[str, Any]:
        problems = self.config_checks() if self.config_checks else []
        if problems:
            return {"status": HealthStatus.WARN, "componentType": "configuration",
                    "output": "; ".join(problems), "time": _now()}
        return {"status": HealthStatus.PASS, "componentType": "configuration", "time": _now()}

    @staticmethod
    def calculate_overall_status(checks: Dict[str, Dict[str, Any]]) -> HealthStatus:
        statuses = [check.get("status", HealthStatus.PASS) for check in checks.values()]
        if HealthStatus.FAIL in statuses:
            return HealthStatus.FAIL
        if HealthStatus.WARN in statuses:
            return HealthStatus.WARN
        return HealthStatus.PASS
