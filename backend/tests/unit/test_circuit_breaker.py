# backend/tests/unit/test_circuit_breaker.py
import pytest
from unittest.mock import AsyncMock

from bealigned.utils.circuit_breaker import CircuitBreaker, CircuitOpenError, CircuitState


@pytest.mark.asyncio
async def test_breaker_opens_after_threshold_and_blocks_calls():
    breaker = CircuitBreaker("test", failure_threshold=2, timeout=60)
    failing = AsyncMock(side_effect=RuntimeError("boom"))

    for _ in range(2):
        with pytest.raises(RuntimeError):
            await breaker.call(failing)

    assert breaker.state == CircuitState.OPEN
    with pytest.raises(CircuitOpenError):
        await breaker.call(failing)
    assert failing.await_count == 2
    assert breaker.snapshot()["retry_after_seconds"] > 0


@pytest.mark.asyncio
async def test_half_open_breaker_closes_after_successes():
    breaker = CircuitBreaker("test", failure_threshold=1, timeout=0, success_threshold=2)
    with pytest.raises(RuntimeError):
        await breaker.call(AsyncMock(side_effect=RuntimeError("boom")))
    assert breaker.state == CircuitState.OPEN

    breaker.last_failure_time -= 1
    ok = AsyncMock(return_value="ok")
    assert await breaker.call(ok) == "ok"
    assert breaker.state == CircuitState.HALF_OPEN
    assert await breaker.call(ok) == "ok"
    assert breaker.state == CircuitState.CLOSED
    assert breaker.snapshot() == {"state": "closed", "failures": 0, "retry_after_seconds": 0.0}
