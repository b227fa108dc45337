"""Health check state for the prediction service."""

from enum import Enum
import asyncio
import time
from typing import Optional

from potability.client import PredictionClient


class ServiceState(Enum):
    STARTING = "starting"
    READY = "ready"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthChecker:
    """Tracks service state and remote prediction API reachability.

    An unreachable remote API marks the service DEGRADED rather than
    unready: fully compliant inputs are still answered locally.
    """

    def __init__(self, client: Optional[PredictionClient], recheck_seconds: float = 30):
        self.state = ServiceState.STARTING
        self.client = client
        self.recheck_seconds = recheck_seconds
        self.last_remote_check: Optional[float] = None
        self.remote_reachable: bool = False

    async def startup_check(self) -> bool:
        """Complete startup once the remote API has been probed once."""
        if self.state == ServiceState.STARTING:
            if self.client is None:
                self.state = ServiceState.READY
                return True
            await self._probe()
        return self.state != ServiceState.STARTING

    async def readiness_check(self) -> bool:
        if self.state in (ServiceState.STARTING, ServiceState.UNHEALTHY):
            return False
        if self.client is None:
            return True

        now = time.time()
        if self.last_remote_check is None or (now - self.last_remote_check) > self.recheck_seconds:
            await self._probe()

        return self.state in (ServiceState.READY, ServiceState.DEGRADED)

    async def liveness_check(self) -> bool:
        """Check the event loop is still responsive."""
        try:
            await asyncio.sleep(0)
            return True
        except Exception:
            return False

    async def _probe(self):
        self.remote_reachable = await self.client.check_reachable()
        self.last_remote_check = time.time()
        self.state = ServiceState.READY if self.remote_reachable else ServiceState.DEGRADED
