"""Registration workflow driven over HTTP.

Reproduces the wizard's two-call flow: ``/api/register-affiliate`` writes the
local profile and sends the confirmation email, then
``/api/register-affiliate-main`` writes the ledger record.
"""
from __future__ import annotations

from typing import Optional

from app.client.http import AffiliateApiClient
from app.errors import ApiError, ConflictError, ValidationError
from app.models.db.enums import Availability
from app.services.code_generator import aresolve_unique_code
from app.services.registration import RegistrationForm, RegistrationOrchestrator, RegistrationResult


class HttpRegistrationBackend:
	def __init__(self, api: AffiliateApiClient):
		self.api = api
		self._email_sent = False

	async def check_code(self, code: str) -> Optional[Availability]:
		return await self.api.code_availability(code)

	async def create_local_affiliate(self, form: RegistrationForm) -> None:
		try:
			data = await self.api.register_affiliate({
				"name": form.name.strip(),
				"email": form.email.strip(),
				"phone": form.phone_digits,
				"affiliateCode": form.affiliate_code,
				"note": form.note,
				"selectedProduct": form.selected_product,
				"pdpaConsent": form.pdpa_consent,
				"lineUserId": form.line_user_id,
			})
		except ApiError as e:
			if e.status_code == 409:
				raise ConflictError(e.message, field=e.field) from e
			if e.status_code == 400:
				errors = e.payload.get("errors") or {e.field or "request": e.message}
				raise ValidationError(errors, message=e.message) from e
			raise
		self._email_sent = bool(data.get("emailSent"))

	async def create_ledger_affiliate(self, form: RegistrationForm) -> None:
		await self.api.register_affiliate_main({
			"name": form.name.strip(),
			"email": form.email.strip(),
			"tel": form.phone_digits,
			"generatedCode": form.affiliate_code,
		})

	async def send_confirmation(self, form: RegistrationForm) -> bool:
		# Sent by the local registration endpoint
		return self._email_sent


async def suggest_affiliate_code(api: AffiliateApiClient, name: str, phone: str) -> str:
	"""Generated code for the wizard, probing availability through the API."""
	return await aresolve_unique_code(name, phone, api.code_availability)


async def register_over_http(api: AffiliateApiClient, form: RegistrationForm) -> RegistrationResult:
	return await RegistrationOrchestrator(HttpRegistrationBackend(api)).submit(form)


__all__ = ["HttpRegistrationBackend", "suggest_affiliate_code", "register_over_http"]
