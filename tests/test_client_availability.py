import asyncio
from app.client.availability import CHECKING, DebouncedAvailabilityChecker
from app.errors import NetworkError
from app.models.db.enums import Availability


class RecordingLookup:
    def __init__(self, taken=(), latency=None, error=None):
        self.taken = set(taken)
        self.latency = latency or {}
        self.error = error
        self.calls: list[str] = []

    async def __call__(self, code):
        self.calls.append(code)
        await asyncio.sleep(self.latency.get(code, 0))
        if self.error:
            raise self.error
        return Availability.TAKEN if code in self.taken else Availability.AVAILABLE


def test_rapid_input_queries_only_final_value():
    lookup = RecordingLookup(taken={"SOM5678"})

    async def scenario():
        checker = DebouncedAvailabilityChecker(lookup, delay=0.05)
        for value in ("SOM", "SOM5", "SOM56", "SOM567", "SOM5678"):
            assert checker.update(value) == CHECKING
            await asyncio.sleep(0.01)
        await checker.wait()
        return checker.status

    assert asyncio.run(scenario()) == "taken"
    assert lookup.calls == ["SOM5678"]


def test_stale_response_is_discarded_by_value():
    lookup = RecordingLookup(latency={"SLOW123": 0.2})
    applied = []

    async def scenario():
        checker = DebouncedAvailabilityChecker(lookup, delay=0, on_result=lambda c, r: applied.append((c, r)))
        checker.update("SLOW123")
        await asyncio.sleep(0.05)  # timer fired; SLOW123 is in flight
        checker.update("FAST123")
        await checker.wait()
        return checker

    checker = asyncio.run(scenario())
    assert lookup.calls == ["SLOW123", "FAST123"]
    assert applied == [("FAST123", Availability.AVAILABLE)]
    assert checker.current == "FAST123"
    assert checker.status == "available"


def test_short_candidate_is_neutral_and_not_queried():
    lookup = RecordingLookup()

    async def scenario():
        checker = DebouncedAvailabilityChecker(lookup, delay=0)
        assert checker.update("AB") is None
        await checker.wait()
        return checker.status

    assert asyncio.run(scenario()) is None
    assert lookup.calls == []


def test_network_failure_is_error_not_taken():
    lookup = RecordingLookup(error=NetworkError("offline"))

    async def scenario():
        checker = DebouncedAvailabilityChecker(lookup, delay=0)
        return await checker.check_now("SOM5678"), checker.status

    assert asyncio.run(scenario()) == (Availability.ERROR, "error")


def test_check_now_cancels_pending_timer():
    lookup = RecordingLookup()

    async def scenario():
        checker = DebouncedAvailabilityChecker(lookup, delay=0.2)
        checker.update("SOM5678")
        result = await checker.check_now("SOM5678")
        await checker.wait()
        return result

    assert asyncio.run(scenario()) == Availability.AVAILABLE
    assert lookup.calls == ["SOM5678"]


def test_email_input_is_debounced_and_queried():
    lookup = RecordingLookup(taken={"jane@x.com"})

    async def scenario():
        checker = DebouncedAvailabilityChecker.for_email(lookup, delay=0.05)
        for value in ("jane", "jane@x", "jane@x.com"):
            checker.update(value)
            await asyncio.sleep(0.01)
        await checker.wait()
        return checker.status

    assert asyncio.run(scenario()) == "taken"
    assert lookup.calls == ["jane@x.com"]


def test_stale_email_result_is_discarded():
    lookup = RecordingLookup(latency={"old@x.com": 0.2})
    applied = []

    async def scenario():
        checker = DebouncedAvailabilityChecker.for_email(lookup, delay=0, on_result=lambda c, r: applied.append(c))
        checker.update("old@x.com")
        await asyncio.sleep(0.05)
        checker.update("new@x.com")
        await checker.wait()
        return checker.status

    assert asyncio.run(scenario()) == "available"
    assert lookup.calls == ["old@x.com", "new@x.com"]
    assert applied == ["new@x.com"]


def test_code_checker_treats_email_as_neutral():
    lookup = RecordingLookup()

    async def scenario():
        checker = DebouncedAvailabilityChecker(lookup, delay=0)
        checker.update("jane@x.com")
        await checker.wait()

    asyncio.run(scenario())
    assert lookup.calls == []
