"""
capture.service
Facade wiring the session cache, admission controller and orchestrator together.

Usage:
  service = ScreenshotService(CaptureConfig.from_env())
  result = await service.capture(CaptureRequest(source_url="https://polymarket.com/event/x"))
  await service.close()
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Awaitable, Callable, Optional

from browser.session import SessionCache
from rules import rule_source_files

from .admission import AdmissionController
from .config import CaptureConfig
from .errors import ShotError
from .models import CaptureRequest, CaptureResult
from .orchestrator import CaptureOrchestrator

logger = logging.getLogger(__name__)

VERSION_KEY_LENGTH = 12


def compute_version_key(config: CaptureConfig) -> str:
    """Rule-set content hash in development, the fixed release constant otherwise."""
    if not config.is_development:
        return config.production_version
    digest = hashlib.md5()
    for path in rule_source_files():
        with open(path, "rb") as f:
            digest.update(f.read())
    return digest.hexdigest()[:VERSION_KEY_LENGTH]


class ScreenshotService:
    def __init__(
        self,
        config: Optional[CaptureConfig] = None,
        engine_factory: Optional[Callable[[str], Awaitable[Any]]] = None,
    ) -> None:
        self.config = config or CaptureConfig.from_env()
        self.sessions = SessionCache(engine_factory or self._launch)
        self.admission = AdmissionController(self.config.max_concurrent_captures)
        self.orchestrator = CaptureOrchestrator(self.config)

    async def _launch(self, version: str) -> Any:
        from browser.env import launch_session  # playwright is only needed for a real engine

        return await launch_session(self.config, version)

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        async with self.admission.slot():
            version = compute_version_key(self.config)
            try:
                session = await self.sessions.get(version)
            except ShotError as e:
                logger.error("engine unavailable: %s", e)
                return CaptureResult(
                    success=False, source_url=request.source_url, error=str(e), error_code=e.code
                )
            return await self.orchestrator.run(request, session)

    async def close(self) -> None:
        await self.sessions.close()
