"""Request logging and last-resort error handling for the API.

RequestLogMiddleware tags each request with a correlation id (X-Request-ID is honoured
when the caller sends one) and logs the request and its outcome.
JsonExceptionMiddleware turns any unhandled view exception into the generic 500 envelope.
"""

import json
import logging
import time
import uuid

from django.conf import settings

from .request_context import request_id_var
from .responses import fail

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ("password", "token", "privatekey", "private_key", "secret")
MAX_REQUEST_ID_LENGTH = 64


def sanitize_body(body):
	"""
	Copy of a JSON body safe to log: secrets redacted, signatures shortened
	"""
	if isinstance(body, list):
		return [sanitize_body(item) for item in body]
	if not isinstance(body, dict):
		return body
	clean = {}
	for key, value in body.items():
		lowered = str(key).lower()
		if lowered == "signature" and isinstance(value, str) and len(value) > 20:
			clean[key] = f"{value[:10]}...{value[-10:]}"
		elif lowered in SENSITIVE_FIELDS:
			clean[key] = "[REDACTED]"
		else:
			clean[key] = sanitize_body(value)
	return clean


def _loggable_body(request):
	if request.content_type != "application/json" or not request.body:
		return None
	try:
		return sanitize_body(json.loads(request.body))
	except (ValueError, UnicodeDecodeError):
		return "<invalid json>"


class RequestLogMiddleware:

	def __init__(self, get_response):
		self.get_response = get_response

	def __call__(self, request):
		incoming = request.headers.get("X-Request-ID", "")
		request.request_id = incoming[:MAX_REQUEST_ID_LENGTH] if incoming else str(uuid.uuid4())
		token = request_id_var.set(request.request_id)
		started = time.monotonic()
		try:
			logger.info(
				"Incoming Request %s %s query=%s body=%s ip=%s",
				request.method, request.path, dict(request.GET), _loggable_body(request), request.META.get("REMOTE_ADDR"),
			)
			response = self.get_response(request)
			elapsed_ms = int((time.monotonic() - started) * 1000)
			logger.info("Request Completed %s %s status=%s time=%sms", request.method, request.path, response.status_code, elapsed_ms)
			response["X-Request-ID"] = request.request_id
			return response
		finally:
			request_id_var.reset(token)


class JsonExceptionMiddleware:

	def __init__(self, get_response):
		self.get_response = get_response

	def __call__(self, request):
		return self.get_response(request)

	def process_exception(self, request, exception):
		logger.exception("Unhandled Error %s %s: %s", request.method, request.path, exception)
		extra = {"message": str(exception)} if settings.DEBUG else {}
		return fail("Internal server error", status=500, **extra)
