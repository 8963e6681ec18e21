"""Monitoring alert setup with fixed thresholds."""

from __future__ import annotations

from typing import Sequence

from core.domain.models import AlertRule
from core.interfaces.platform import HostingPlatform
from core.logging import get_logger

logger = get_logger(__name__)


def default_alert_rules(app: str) -> list[AlertRule]:
    """Baseline rules for a freshly migrated ISAPI app."""

    return [
        AlertRule(
            name=f"{app}-http-5xx",
            metric="Http5xx",
            operator="GreaterThan",
            threshold=10,
            window_minutes=5,
            severity=1,
            description="More than 10 server errors in 5 minutes.",
        ),
        AlertRule(
            name=f"{app}-response-time",
            metric="AverageResponseTime",
            operator="GreaterThan",
            threshold=5,
            window_minutes=5,
            severity=2,
            description="Average response time above 5 seconds.",
        ),
        AlertRule(
            name=f"{app}-cpu",
            metric="CpuPercentage",
            operator="GreaterThan",
            threshold=80,
            window_minutes=15,
            severity=2,
            description="CPU above 80% for 15 minutes.",
        ),
        AlertRule(
            name=f"{app}-memory",
            metric="MemoryPercentage",
            operator="GreaterThan",
            threshold=85,
            window_minutes=15,
            severity=2,
            description="Memory above 85% for 15 minutes.",
        ),
        AlertRule(
            name=f"{app}-health",
            metric="HealthCheckStatus",
            operator="LessThan",
            threshold=100,
            window_minutes=5,
            severity=1,
            description="Health check success rate below 100%.",
        ),
    ]


def apply_alert_rules(platform: HostingPlatform, app: str, rules: Sequence[AlertRule]) -> list[str]:
    """Create each rule in order; the first failure propagates."""

    created: list[str] = []
    for rule in rules:
        platform.create_alert_rule(app, rule)
        created.append(rule.name)
        logger.info("Alert rule created", app=app, rule=rule.name, metric=rule.metric)
    return created
