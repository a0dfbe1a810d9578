"""Per-request correlation id, visible to every log record emitted while serving it."""

import contextvars
import logging

request_id_var = contextvars.ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):

	def filter(self, record):
		record.request_id = request_id_var.get()
		return True
