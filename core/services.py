"""Business orchestration for the governance dashboard.

This module coordinates proposal submission across the database and the Governor:
calculate on-chain id → save draft → propose() on chain → mark published.

The steps run strictly in that order and nothing spans both systems: the draft is
committed before the transaction is sent, so a failed chain step leaves an
unpublished draft behind for a chain-only retry. The unique onchain_id column is
the only guard against two identical submissions.
"""

import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from eth_utils import is_address, is_hex

from .adapters.chain_adapter import GovernorAdapter
from .adapters.wallet_adapter import WalletAdapter
from .constants import PROPOSER_ROLE, EXECUTOR_ROLE, default_actions, description_hash, expected_proposal_id
from .exceptions import (
	AlreadyVoted, ChainReadError, ChainSubmissionError, ChainWriteError, DraftConflictError, IdentifierCalculationError,
)
from .models import Proposal, User, VoteType, combine_description

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 500


@dataclass
class SubmissionResult:
	proposal: Proposal
	tx_hash: str
	# Non-empty when the chain tx confirmed but the draft could not be marked published
	warning: str = ""


def normalize_actions(proposer: str, targets=None, values=None, calldatas=None):
	"""
	Validate propose() arrays; all three omitted means the default no-op action.
	Values are returned as ints and addresses lower-cased so the stored arrays hash
	identically on every later call.
	"""
	if targets is None and values is None and calldatas is None:
		targets, values, calldatas = default_actions(proposer)

	if not isinstance(targets, list) or not isinstance(values, list) or not isinstance(calldatas, list):
		raise ValidationError("targets, values and calldatas must be lists")
	if not targets or not (len(targets) == len(values) == len(calldatas)):
		raise ValidationError("targets, values and calldatas must be non-empty and of equal length")

	out_targets, out_values, out_calldatas = [], [], []
	for target, value, calldata in zip(targets, values, calldatas):
		if not isinstance(target, str) or not is_address(target):
			raise ValidationError(f"invalid target address: {target!r}")
		try:
			value = int(value)
		except (TypeError, ValueError):
			raise ValidationError(f"invalid value: {value!r}")
		if value < 0:
			raise ValidationError("values must be >= 0")
		if not isinstance(calldata, str) or not calldata.startswith("0x") or not is_hex(calldata) or len(calldata) % 2:
			raise ValidationError(f"invalid calldata: {calldata!r}")
		out_targets.append(target.lower())
		out_values.append(value)
		out_calldatas.append(calldata.lower())
	return out_targets, out_values, out_calldatas


# --- Pipeline steps ----------------------------------------------------------

def calculate_onchain_id(chain: GovernorAdapter, targets, values, calldatas, description: str) -> int:
	"""
	Ask the Governor which id it will assign to this exact proposal.

	The contract answer is authoritative; a mismatch with the locally derived hash is
	only logged (custom Governors may number proposals differently).
	"""
	desc_hash = description_hash(description)
	try:
		onchain_id = chain.get_proposal_id(targets, values, calldatas, desc_hash)
	except ChainReadError as e:
		raise IdentifierCalculationError(f"Failed to calculate onchain proposal ID: {e.message}") from e

	local_id = expected_proposal_id(targets, values, calldatas, desc_hash)
	if local_id != onchain_id:
		logger.warning("Governor id %s differs from hashProposal %s", onchain_id, local_id)
	return onchain_id


def record_draft(onchain_id: int, title: str, description: str, user: User, targets, values, calldatas) -> Proposal:
	"""
	Persist the unpublished draft. Must be committed before anything is sent on-chain.
	"""
	onchain_id = str(onchain_id)
	if Proposal.objects.filter(onchain_id=onchain_id).exists():
		raise DraftConflictError("Proposal with this onchain_id already exists")
	try:
		with transaction.atomic():
			proposal = Proposal.objects.create(
				onchain_id=onchain_id,
				title=title,
				description=description,
				published=False,
				user=user,
				targets=targets,
				values=[str(v) for v in values],
				calldatas=calldatas,
			)
	except IntegrityError as e:
		# Another request saved the same proposal between our check and insert
		raise DraftConflictError("Proposal with this onchain_id already exists") from e
	logger.info("Draft proposal %s saved (onchain_id=%s, user=%s)", proposal.id, onchain_id, user.id)
	return proposal


def submit_to_chain(chain: GovernorAdapter, proposal: Proposal) -> str:
	"""
	propose() with the stored arrays and combined description; returns the tx hash.

	On failure the draft keeps published=False and last_error records why.
	"""
	proposal.submit_attempts += 1
	try:
		tx_hash, created_id = chain.propose(proposal.targets, proposal.values, proposal.calldatas, proposal.combined_description)
	except ChainWriteError as e:
		_record_failure(proposal, e.message)
		raise ChainSubmissionError(e.message, proposal=proposal, tx_hash=e.tx_hash) from e

	if created_id is not None and str(created_id) != proposal.onchain_id:
		message = f"Governor created proposal {created_id}, expected {proposal.onchain_id}"
		_record_failure(proposal, message)
		raise ChainSubmissionError(message, proposal=proposal, tx_hash=tx_hash)
	return tx_hash


def publish(proposal: Proposal, tx_hash: str) -> Proposal:
	proposal.published = True
	proposal.tx_hash = tx_hash
	proposal.last_error = ""
	proposal.save(update_fields=["published", "tx_hash", "last_error", "submit_attempts", "updated_at"])
	logger.info("Proposal %s published (tx %s)", proposal.id, tx_hash)
	return proposal


def _record_failure(proposal: Proposal, message: str):
	proposal.last_error = message
	try:
		proposal.save(update_fields=["last_error", "submit_attempts", "updated_at"])
	except DatabaseError:
		logger.exception("Could not record chain failure on proposal %s", proposal.id)
	logger.warning("Chain submission failed for proposal %s: %s", proposal.id, message)


def _reconcile(proposal: Proposal, tx_hash: str) -> SubmissionResult:
	try:
		publish(proposal, tx_hash)
	except DatabaseError as e:
		proposal.published = False
		logger.error("Proposal %s is live on-chain (tx %s) but could not be marked published: %s", proposal.id, tx_hash, e)
		return SubmissionResult(proposal, tx_hash, warning="Proposal submitted on-chain but could not be marked as published")
	return SubmissionResult(proposal, tx_hash)


# --- Entry points ------------------------------------------------------------

def submit_proposal(user: User, title: str, description: str, targets=None, values=None, calldatas=None, *, chain: GovernorAdapter | None = None) -> SubmissionResult:
	"""
	Run the whole pipeline for `user`.

	Raises IdentifierCalculationError / DraftConflictError before anything is saved or sent,
	ChainSubmissionError after the draft is saved. A publish failure is returned as a warning.
	"""
	title = title.strip() if isinstance(title, str) else ""
	description = description.strip() if isinstance(description, str) else ""
	if not title or not description:
		raise ValidationError("title and description are required")
	if len(title) > MAX_TITLE_LENGTH:
		raise ValidationError(f"title must be at most {MAX_TITLE_LENGTH} characters")
	targets, values, calldatas = normalize_actions(user.address, targets, values, calldatas)

	chain = chain or GovernorAdapter.from_settings()
	combined = combine_description(title, description)

	onchain_id = calculate_onchain_id(chain, targets, values, calldatas, combined)
	proposal = record_draft(onchain_id, title, description, user, targets, values, calldatas)
	tx_hash = submit_to_chain(chain, proposal)
	return _reconcile(proposal, tx_hash)


def resubmit_proposal(proposal: Proposal, *, chain: GovernorAdapter | None = None) -> SubmissionResult:
	"""
	Chain-only retry for a draft whose propose() failed.
	Refuses when the stored title/description/arrays no longer hash to onchain_id.
	"""
	if proposal.published:
		raise ValidationError("Proposal is already published")
	chain = chain or GovernorAdapter.from_settings()

	onchain_id = calculate_onchain_id(chain, proposal.targets, proposal.values, proposal.calldatas, proposal.combined_description)
	if str(onchain_id) != proposal.onchain_id:
		raise ValidationError("Proposal content changed since the draft was saved; its onchain_id no longer matches")
	tx_hash = submit_to_chain(chain, proposal)
	return _reconcile(proposal, tx_hash)


def publish_confirmed(proposal: Proposal, tx_hash: str = "", *, chain: GovernorAdapter | None = None) -> Proposal:
	"""
	Manual reconciliation: mark a draft published once the Governor knows about it.
	state() reverts for unknown ids, which surfaces here as ChainReadError.
	"""
	if proposal.published:
		return proposal
	chain = chain or GovernorAdapter.from_settings()
	state = chain.proposal_state(int(proposal.onchain_id))
	logger.info("Proposal %s found on-chain in state %s", proposal.id, state.name)
	return publish(proposal, tx_hash or proposal.tx_hash)


class GovernanceServices:

	@staticmethod
	def authenticate_wallet(message: str, signature: str) -> tuple[User, str, bool]:
		"""
		Recover the signer of the challenge and fetch (or create) its user row.
		Returns (user, checksummed address, created)
		"""
		recovered = WalletAdapter.verify_challenge(message, signature)
		user, created = User.objects.get_or_create(address=recovered.lower())
		if created:
			logger.info("New user %s created for %s", user.id, user.address)
		return user, recovered, created

	@staticmethod
	def cast_vote(onchain_id: int, support, *, chain: GovernorAdapter | None = None) -> str:
		"""
		Vote as the operator. hasVoted is checked first so a repeat vote never builds a tx.
		"""
		try:
			support = VoteType(int(support))
		except (TypeError, ValueError):
			raise ValidationError("support must be 0 (against), 1 (for) or 2 (abstain)")
		chain = chain or GovernorAdapter.from_settings()
		voter = chain.operator_address()
		if chain.has_voted(onchain_id, voter):
			raise AlreadyVoted(f"{voter} has already voted on proposal {onchain_id}")
		return chain.cast_vote(onchain_id, support)

	@staticmethod
	def self_delegate(*, chain: GovernorAdapter | None = None) -> str | None:
		"""
		Delegate the operator's tokens to itself when its votes lag its balance.
		Returns the tx hash, or None when nothing had to be done.
		"""
		chain = chain or GovernorAdapter.from_settings()
		operator = chain.operator_address()
		if chain.get_votes(operator) == chain.balance_of(operator):
			return None
		return chain.delegate(operator)

	@staticmethod
	def ensure_timelock_roles(*, chain: GovernorAdapter | None = None) -> list[str]:
		"""
		Grant the Governor PROPOSER_ROLE and EXECUTOR_ROLE on the Timelock if missing.
		Returns the names of the roles granted.
		"""
		chain = chain or GovernorAdapter.from_settings()
		granted = []
		for name, role in (("EXECUTOR_ROLE", EXECUTOR_ROLE), ("PROPOSER_ROLE", PROPOSER_ROLE)):
			if not chain.has_role(role, chain.governor_address):
				chain.grant_role(role, chain.governor_address)
				granted.append(name)
		return granted
