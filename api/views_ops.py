"""Operational endpoints: liveness, CSRF bootstrap and the JSON error handlers."""

import logging

from django.middleware.csrf import get_token

from .responses import ok, fail

logger = logging.getLogger(__name__)


def health(request):
	logger.info("Health check requested")
	return ok({"status": "OK", "message": "Server is running!"})


def csrf(request):
	# Forces creation/rotation of the CSRF token AND sets 'csrftoken' cookie
	return ok({"csrftoken": get_token(request)})


def route_not_found(request, exception=None):
	logger.warning("Route not found %s %s", request.method, request.path)
	return fail("Route not found", status=404)


def server_error(request):
	return fail("Internal server error", status=500)
