"""Async HTTP client for the affiliate API (aiohttp).

Every request gets a total timeout. Transient connection failures are retried
with linear backoff; a timeout is raised straight away as
``RequestTimeoutError`` and a non-2xx response as ``ApiError``, neither of
which is retried.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp

from app.config import API_BASE_URL, CLIENT_RETRY_POLICY
from app.errors import AffiliateError, ApiError, NetworkError, RequestTimeoutError, UnknownError
from app.models.db.enums import Availability
from app.services.availability import is_checkable_code, is_checkable_email
from app.utils import get_logger
from app.utils.backoff import compute_retry_delay

logger = get_logger(__name__)


class AffiliateApiClient:
	def __init__(
		self,
		base_url: Optional[str] = None,
		*,
		timeout: Optional[float] = None,
		retries: Optional[int] = None,
		retry_delay: Optional[float] = None,
	):
		self.base_url = (base_url or API_BASE_URL).rstrip("/")
		self.timeout = float(timeout if timeout is not None else CLIENT_RETRY_POLICY["timeout_seconds"])
		self.retries = int(retries if retries is not None else CLIENT_RETRY_POLICY["retries"])
		self.retry_delay = float(retry_delay if retry_delay is not None else CLIENT_RETRY_POLICY["retry_delay_seconds"])
		self._session: Optional[aiohttp.ClientSession] = None

	async def __aenter__(self) -> "AffiliateApiClient":
		return self

	async def __aexit__(self, *exc_info) -> None:
		await self.close()

	def _get_session(self) -> aiohttp.ClientSession:
		if self._session is None or self._session.closed:
			self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
		return self._session

	async def close(self) -> None:
		if self._session is not None and not self._session.closed:
			await self._session.close()
		self._session = None

	async def _request(
		self,
		method: str,
		path: str,
		*,
		payload: Optional[dict] = None,
		params: Optional[dict] = None,
	) -> Dict[str, Any]:
		url = f"{self.base_url}{path}"
		last_error: Optional[BaseException] = None
		for attempt in range(self.retries + 1):
			try:
				async with self._get_session().request(method, url, json=payload, params=params) as resp:
					text = await resp.text()
					try:
						data = json.loads(text) if text else {}
					except json.JSONDecodeError:
						data = {"raw": text}
					if 200 <= resp.status < 300:
						return data
					message = data.get("message") if isinstance(data, dict) else None
					raise ApiError(
						message or f"Request failed with status {resp.status}",
						status_code=resp.status,
						payload=data if isinstance(data, dict) else {},
					)
			except asyncio.TimeoutError as e:
				logger.warning("API request timed out", method=method, url=url, timeout=self.timeout)
				raise RequestTimeoutError("Request timed out. Please try again.") from e
			except aiohttp.ClientConnectionError as e:
				last_error = e
				if attempt < self.retries:
					delay = compute_retry_delay(attempt, step=self.retry_delay)
					logger.warning(
						"API request failed; retrying",
						method=method,
						url=url,
						attempt=attempt + 1,
						delay_seconds=delay,
						error=str(e),
					)
					await asyncio.sleep(delay)
			except aiohttp.ClientError as e:
				logger.error("API request failed", method=method, url=url, error=str(e), exc_info=True)
				raise UnknownError("Unexpected error. Please try again.") from e
		logger.error("API request failed after retries", method=method, url=url, attempts=self.retries + 1, error=str(last_error))
		raise NetworkError("Network error. Please check your connection.") from last_error

	# ------------------------------ Registration ------------------------------ #

	async def check_affiliate(self, *, affiliate_code: Optional[str] = None, email: Optional[str] = None) -> bool:
		params = {}
		if affiliate_code:
			params["affiliateCode"] = affiliate_code
		if email:
			params["email"] = email
		data = await self._request("GET", "/api/check-affiliate", params=params)
		return bool(data.get("exists"))

	async def code_availability(self, code: str) -> Optional[Availability]:
		"""Availability lookup; failures yield ``ERROR`` rather than raising."""
		if not is_checkable_code(code):
			return None
		try:
			taken = await self.check_affiliate(affiliate_code=code)
		except AffiliateError as e:
			logger.warning("Code availability check failed", affiliate_code=code, error=str(e))
			return Availability.ERROR
		return Availability.TAKEN if taken else Availability.AVAILABLE

	async def email_availability(self, email: str) -> Optional[Availability]:
		if not is_checkable_email(email):
			return None
		try:
			taken = await self.check_affiliate(email=email)
		except AffiliateError as e:
			logger.warning("Email availability check failed", email=email, error=str(e))
			return Availability.ERROR
		return Availability.TAKEN if taken else Availability.AVAILABLE

	async def register_affiliate(self, payload: dict) -> Dict[str, Any]:
		return await self._request("POST", "/api/register-affiliate", payload=payload)

	async def register_affiliate_main(self, payload: dict) -> Dict[str, Any]:
		return await self._request("POST", "/api/register-affiliate-main", payload=payload)

	async def register(self, payload: dict) -> Dict[str, Any]:
		return await self._request("POST", "/api/register", payload=payload)

	# -------------------------------- Portal ---------------------------------- #

	async def get_dashboard(self, user_id: str) -> Dict[str, Any]:
		data = await self._request("GET", f"/api/affiliate/dashboard/{user_id}")
		return data.get("data", {})

	async def get_referrals(self, user_id: str) -> list:
		data = await self._request("GET", f"/api/affiliate/referrals/{user_id}")
		return data.get("data", {}).get("referrals", [])

	async def get_notifications(self, user_id: str, last_seen: Optional[str] = None) -> Dict[str, Any]:
		params = {"lastSeen": last_seen} if last_seen else None
		data = await self._request("GET", f"/api/affiliate/notifications/{user_id}", params=params)
		return data.get("data", {})


__all__ = ["AffiliateApiClient"]
