import asyncio

from capture.config import CaptureConfig
from capture.constants import PRODUCTION_VERSION
from capture.errors import EngineUninitializedError
from capture.models import CaptureRequest
from capture.service import ScreenshotService, compute_version_key

from fakes import FakePage, FakeSession


def test_version_key_by_environment():
    assert compute_version_key(CaptureConfig(environment="production")) == PRODUCTION_VERSION
    assert compute_version_key(CaptureConfig(environment="production", production_version="v7")) == "v7"
    dev = compute_version_key(CaptureConfig(environment="development"))
    assert len(dev) == 12
    assert int(dev, 16) >= 0
    assert dev == compute_version_key(CaptureConfig(environment="development"))


def test_captures_share_one_engine_and_respect_concurrency():
    launched = []
    sessions = []
    in_flight = {"now": 0, "peak": 0}

    class CountingSession(FakeSession):
        async def new_page(self, width, height, device_scale_factor):
            in_flight["now"] += 1
            in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
            page = await super().new_page(width, height, device_scale_factor)
            original_close = page.close

            async def close():
                await asyncio.sleep(0.01)
                in_flight["now"] -= 1
                await original_close()

            page.close = close
            return page

    async def factory(version):
        launched.append(version)
        session = CountingSession(FakePage, version=version)
        sessions.append(session)
        return session

    async def scenario():
        service = ScreenshotService(CaptureConfig(max_concurrent_captures=2), engine_factory=factory)
        requests = [CaptureRequest(source_url=f"https://polymarket.com/event/m{i}") for i in range(5)]
        results = await asyncio.gather(*(service.capture(r) for r in requests))
        await service.close()
        return service, results

    service, results = asyncio.run(scenario())
    assert launched == [PRODUCTION_VERSION]
    assert all(r.success for r in results), [r.error for r in results]
    assert in_flight["peak"] <= 2
    assert service.admission.peak == 2
    assert len(sessions) == 1 and sessions[0].closed


def test_engine_failure_is_a_failed_result():
    async def factory(version):
        raise EngineUninitializedError(code="ENGINE_UNINITIALIZED", stage="launch", message="no browser")

    async def scenario():
        service = ScreenshotService(CaptureConfig(), engine_factory=factory)
        result = await service.capture(CaptureRequest(source_url="https://polymarket.com/event/x"))
        await service.close()
        return service, result

    service, result = asyncio.run(scenario())
    assert not result.success
    assert result.error_code == "ENGINE_UNINITIALIZED"
    assert service.admission.active == 0
