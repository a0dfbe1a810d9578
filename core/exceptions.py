"""Errors raised by the governance services and adapters.

Each carries the HTTP status the API answers with, so views translate them
without inspecting the failure.
"""


class GovernanceError(Exception):
	"""Base class; status is the HTTP code the API returns"""
	status = 500

	def __init__(self, message: str, *, status: int | None = None):
		super().__init__(message)
		self.message = message
		if status is not None:
			self.status = status


class InvalidSignature(GovernanceError):
	status = 400


class ChainReadError(GovernanceError):
	"""A view call reverted or the node could not be reached"""
	status = 502


class ChainWriteError(GovernanceError):
	"""A transaction was rejected, reverted or never confirmed"""
	status = 502

	def __init__(self, message: str, *, tx_hash: str = "", status: int | None = None):
		super().__init__(message, status=status)
		self.tx_hash = tx_hash


class AlreadyVoted(GovernanceError):
	status = 409


# --- Submission pipeline -----------------------------------------------------

class IdentifierCalculationError(GovernanceError):
	"""Nothing was saved; safe to retry the whole submission"""
	status = 502


class DraftConflictError(GovernanceError):
	"""A draft with this on-chain id already exists"""
	status = 409


class ChainSubmissionError(GovernanceError):
	"""
	propose() failed after the draft was saved; the draft is kept unpublished
	and can be resubmitted to the chain only
	"""
	status = 502

	def __init__(self, message: str, *, proposal=None, tx_hash: str = ""):
		super().__init__(message)
		self.proposal = proposal
		self.tx_hash = tx_hash
