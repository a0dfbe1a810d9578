"""Direct Governor / token interactions signed by the operator account."""

import logging

from django.core.exceptions import ValidationError

from core.adapters.chain_adapter import GovernorAdapter
from core.adapters.wallet_adapter import WalletAdapter
from core.constants import canonical_onchain_id, units_to_tokens
from core.exceptions import GovernanceError
from core.services import GovernanceServices

from .responses import ok, fail, read_json, validation_failed, governance_failed, method_not_allowed
from .views_users import session_user

logger = logging.getLogger(__name__)


def account(request, address: str):
	"""
	GET: Token symbol, balance, current votes and (with ?timepoint=) past votes
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	try:
		address = WalletAdapter.normalize_address(address)
	except ValueError:
		return fail("Invalid address", status=400)

	timepoint = request.GET.get("timepoint")
	if timepoint is not None:
		try:
			timepoint = int(timepoint)
		except ValueError:
			return fail("timepoint must be an integer", status=400)
		if timepoint < 0:
			return fail("timepoint must be >= 0", status=400)

	chain = GovernorAdapter.from_settings()
	try:
		balance = chain.balance_of(address)
		votes = chain.get_votes(address)
		data = {
			"address": address,
			"symbol": chain.token_symbol(),
			"balance": str(balance),
			"balanceFormatted": str(units_to_tokens(balance)),
			"votes": str(votes),
			"votesFormatted": str(units_to_tokens(votes)),
		}
		if timepoint is not None:
			data["timepoint"] = timepoint
			data["pastVotes"] = str(chain.get_past_votes(address, timepoint))
	except GovernanceError as e:
		return governance_failed(e)
	return ok(data)


def _proposal_id(onchain_id: str) -> int:
	try:
		return int(canonical_onchain_id(onchain_id))
	except ValueError:
		raise ValidationError("onchainId must be a decimal uint256")


def vote(request, onchain_id: str):
	"""
	POST: Cast the operator's vote {support: 0|1|2}
	"""
	if request.method != "POST":
		return method_not_allowed("POST")
	if session_user(request) is None:
		return fail("Not authenticated", status=401)
	try:
		proposal_id = _proposal_id(onchain_id)
		body = read_json(request)
		if "support" not in body:
			raise ValidationError("support is required")
		tx_hash = GovernanceServices.cast_vote(proposal_id, body["support"])
	except ValidationError as e:
		return validation_failed(e)
	except GovernanceError as e:
		logger.warning("Vote on %s rejected: %s", onchain_id, e.message)
		return governance_failed(e)
	return ok({"onchainId": str(proposal_id), "support": int(body["support"]), "txHash": tx_hash}, message="Vote cast")


def queue(request, onchain_id: str):
	"""
	POST: Queue a succeeded proposal in the Timelock
	"""
	return _lifecycle(request, onchain_id, "queue")


def execute(request, onchain_id: str):
	"""
	POST: Execute a queued proposal
	"""
	return _lifecycle(request, onchain_id, "execute")


def _lifecycle(request, onchain_id: str, action: str):
	if request.method != "POST":
		return method_not_allowed("POST")
	if session_user(request) is None:
		return fail("Not authenticated", status=401)
	try:
		proposal_id = _proposal_id(onchain_id)
	except ValidationError as e:
		return validation_failed(e)
	chain = GovernorAdapter.from_settings()
	try:
		tx_hash = getattr(chain, action)(proposal_id)
	except GovernanceError as e:
		logger.warning("%s of proposal %s failed: %s", action, onchain_id, e.message)
		return governance_failed(e, txHash=getattr(e, "tx_hash", "") or None)
	logger.info("Proposal %s %s tx %s", onchain_id, action, tx_hash)
	return ok({"onchainId": str(proposal_id), "txHash": tx_hash}, message=f"Proposal {action} transaction confirmed")


def delegate(request):
	"""
	POST: Delegate the operator's votes to {delegatee} (defaults to itself)
	"""
	if request.method != "POST":
		return method_not_allowed("POST")
	if session_user(request) is None:
		return fail("Not authenticated", status=401)
	try:
		body = read_json(request)
	except ValidationError as e:
		return validation_failed(e)

	chain = GovernorAdapter.from_settings()
	try:
		delegatee = body.get("delegatee") or chain.operator_address()
		delegatee = WalletAdapter.normalize_address(delegatee)
	except ValueError:
		return fail("Invalid delegatee address", status=400)
	except GovernanceError as e:
		return governance_failed(e)

	try:
		tx_hash = chain.delegate(delegatee)
	except GovernanceError as e:
		return governance_failed(e, txHash=getattr(e, "tx_hash", "") or None)
	return ok({"delegatee": delegatee, "txHash": tx_hash}, message="Delegation confirmed")
