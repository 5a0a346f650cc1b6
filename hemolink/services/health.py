"""
Health Check Service

Reports the status of the API and its document store.
"""

import os
import time
from datetime import datetime
from typing import Any, Dict
from opentelemetry import trace

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Service for dependency health monitoring."""

    def __init__(self, mongodb_service, service_version: str = "1.0.0"):
        self.mongodb_service = mongodb_service
        self.service_version = service_version

    def get_health(self) -> Dict[str, Any]:
        """Get overall health including the document store."""
        with tracer.start_as_current_span("health.check") as span:
            start_time = time.time()
            mongodb_health = self.mongodb_service.health_check()
            status = "healthy" if mongodb_health.get("status") == "healthy" else "unhealthy"
            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": status,
                "health.response_time_ms": response_time_ms
            })

            return {
                "status": status,
                "service": "hemolink-api",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": datetime.utcnow().isoformat() + "Z",
                "response_time_ms": response_time_ms,
                "dependencies": {"mongodb": mongodb_health}
            }
