"""
Orchestration layer: transaction boundaries and wiring over the kernel.

Callers (HTTP handlers, jobs, scripts) talk to ``EngagementOrchestrator``;
it opens one session per call, wires the kernel services around it and
commits or rolls back.
"""

from marketplace_services.engagement_orchestrator import (
    EngagementOrchestrator,
    build_engagement_orchestrator,
)
from marketplace_services.errors import to_error_response
from marketplace_services.verification_throttle import ResendThrottle

__all__ = [
    "EngagementOrchestrator",
    "ResendThrottle",
    "build_engagement_orchestrator",
    "to_error_response",
]
