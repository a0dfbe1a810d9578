"""JSON envelopes shared by every endpoint: {success, data|error, requestId}."""

import json
import math

from django.core.exceptions import ValidationError
from django.http import JsonResponse

from core.exceptions import GovernanceError

from .request_context import request_id_var

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


def ok(data=None, *, status=200, message=None, **extra):
	body = {"success": True}
	if data is not None:
		body["data"] = data
	if message:
		body["message"] = message
	body.update(extra)
	body["requestId"] = request_id_var.get()
	return JsonResponse(body, status=status)


def fail(error, *, status=400, **extra):
	body = {"success": False, "error": error}
	body.update(extra)
	body["requestId"] = request_id_var.get()
	return JsonResponse(body, status=status)


def paginate(queryset, page, limit):
	"""
	Slice a queryset; returns (rows, pagination dict)
	"""
	total = queryset.count()
	offset = (page - 1) * limit
	rows = list(queryset[offset:offset + limit])
	return rows, {
		"page": page,
		"limit": limit,
		"total": total,
		"totalPages": math.ceil(total / limit),
	}


def read_json(request) -> dict:
	"""
	Request body as a dict; malformed JSON is a validation error
	"""
	try:
		body = json.loads(request.body or b"{}")
	except (ValueError, UnicodeDecodeError):
		raise ValidationError("Request body must be valid JSON")
	if not isinstance(body, dict):
		raise ValidationError("Request body must be a JSON object")
	return body


def page_params(request):
	"""
	(page, limit) from the query string, defaults 1 and 10
	"""
	try:
		page = int(request.GET.get("page", 1))
		limit = int(request.GET.get("limit", DEFAULT_PAGE_SIZE))
	except ValueError:
		raise ValidationError("page and limit must be integers")
	if page < 1:
		raise ValidationError("page must be >= 1")
	if not 1 <= limit <= MAX_PAGE_SIZE:
		raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
	return page, limit


def validation_failed(e: ValidationError):
	return fail("; ".join(e.messages), status=400)


def governance_failed(e: GovernanceError, **extra):
	return fail(e.message, status=e.status, **extra)


def method_not_allowed(*allowed):
	response = fail("Method not allowed", status=405)
	response["Allow"] = ", ".join(allowed)
	return response
