"""Debounced availability checks (affiliate code or email) for interactive input.

Each keystroke calls ``update``; only the value left standing for the
debounce interval is queried. A response is applied only if its candidate is
still the current input, so a slow answer for an older value can never
overwrite a newer one.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from app.config import AVAILABILITY_DEBOUNCE_SECONDS
from app.errors import AffiliateError
from app.models.db.enums import Availability
from app.services.availability import is_checkable_code, is_checkable_email
from app.utils import get_logger

logger = get_logger(__name__)

CHECKING = "checking"

Lookup = Callable[[str], Awaitable[Optional[Availability]]]


class DebouncedAvailabilityChecker:
	def __init__(
		self,
		lookup: Lookup,
		delay: Optional[float] = None,
		on_result: Optional[Callable[[str, Optional[Availability]], None]] = None,
		is_checkable: Callable[[str], bool] = is_checkable_code,
	):
		self.lookup = lookup
		self.delay = AVAILABILITY_DEBOUNCE_SECONDS if delay is None else delay
		self.on_result = on_result
		self.is_checkable = is_checkable
		self.current: Optional[str] = None
		self.status: Optional[str] = None
		self._timer: Optional[asyncio.Task] = None
		self._inflight: set[asyncio.Task] = set()

	@classmethod
	def for_email(cls, lookup: Lookup, delay: Optional[float] = None, on_result=None) -> "DebouncedAvailabilityChecker":
		return cls(lookup, delay=delay, on_result=on_result, is_checkable=is_checkable_email)

	def _cancel_timer(self) -> None:
		if self._timer is not None and not self._timer.done():
			self._timer.cancel()
		self._timer = None

	def update(self, candidate: str) -> Optional[str]:
		"""Record new input and (re)start the debounce timer. Must run inside an event loop."""
		self._cancel_timer()
		self.current = candidate
		if not self.is_checkable(candidate):
			self.status = None
			return None
		self.status = CHECKING
		self._timer = asyncio.get_running_loop().create_task(self._fire_after_delay(candidate))
		return self.status

	async def _fire_after_delay(self, candidate: str) -> None:
		await asyncio.sleep(self.delay)
		# Past this point the query is no longer cancelled by new input
		self._timer = None
		task = asyncio.get_running_loop().create_task(self._query_and_apply(candidate))
		self._inflight.add(task)
		task.add_done_callback(self._inflight.discard)

	async def _query(self, candidate: str) -> Optional[Availability]:
		try:
			return await self.lookup(candidate)
		except AffiliateError as e:
			logger.warning("Availability lookup failed", candidate=candidate, error=str(e))
			return Availability.ERROR

	def _apply(self, candidate: str, result: Optional[Availability]) -> bool:
		if candidate != self.current:
			logger.debug("Discarding stale availability result", candidate=candidate, current=self.current)
			return False
		self.status = result.value if result is not None else None
		if self.on_result is not None:
			self.on_result(candidate, result)
		return True

	async def _query_and_apply(self, candidate: str) -> None:
		result = await self._query(candidate)
		self._apply(candidate, result)

	async def check_now(self, candidate: str) -> Optional[Availability]:
		"""Undebounced check, used right before submit."""
		self._cancel_timer()
		self.current = candidate
		if not self.is_checkable(candidate):
			self.status = None
			return None
		result = await self._query(candidate)
		self._apply(candidate, result)
		return result

	async def wait(self) -> None:
		"""Wait for the pending timer and any in-flight queries to settle."""
		while self._timer is not None or self._inflight:
			pending = [t for t in (self._timer, *self._inflight) if t is not None]
			await asyncio.gather(*pending, return_exceptions=True)

	def cancel(self) -> None:
		self._cancel_timer()
		for task in list(self._inflight):
			task.cancel()


__all__ = ["CHECKING", "DebouncedAvailabilityChecker"]
