"""Proposal endpoints.

- CRUD over the off-chain draft records (list/filter, stats, admin update, vote counters)
- /submit runs the full pipeline (id → draft → propose() → publish) for the session user
- /resubmit and /publish are the chain-only and publish-only retries
- /{id}/chain reads the live Governor view of a record
"""

import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count

from core import services
from core.adapters.chain_adapter import GovernorAdapter
from core.constants import canonical_onchain_id
from core.exceptions import ChainSubmissionError, GovernanceError
from core.models import Proposal, ProposalState, User

from .responses import (
	ok, fail, paginate, page_params, read_json, validation_failed, governance_failed, method_not_allowed,
)
from .serializers import proposal_json, votes_json
from .views_users import session_user

logger = logging.getLogger(__name__)

MAX_VOTE_COUNT = 2 ** 63 - 1
VOTE_FIELDS = {"for": "votes_for", "against": "votes_against", "abstain": "votes_abstain"}


# --- Helpers -----------------------------------------------------------------

def _parse_bool(value, name: str) -> bool:
	if isinstance(value, bool):
		return value
	if isinstance(value, str) and value.lower() in ("true", "false"):
		return value.lower() == "true"
	raise ValidationError(f"{name} must be true or false")


def _parse_state(value) -> int:
	try:
		state = int(value)
	except (TypeError, ValueError):
		raise ValidationError("state must be an integer between 0 and 7")
	if isinstance(value, bool) or state not in ProposalState.values:
		raise ValidationError("state must be an integer between 0 and 7")
	return state


def _parse_vote_count(value, name: str) -> int:
	if isinstance(value, bool) or not isinstance(value, int):
		raise ValidationError(f"{name} must be a non-negative integer")
	if value < 0 or value > MAX_VOTE_COUNT:
		raise ValidationError(f"{name} must be between 0 and {MAX_VOTE_COUNT}")
	return value


def _filtered(request, queryset):
	"""
	Apply ?published=&state=&userId= filters
	"""
	published = request.GET.get("published")
	if published is not None:
		queryset = queryset.filter(published=_parse_bool(published, "published"))
	state = request.GET.get("state")
	if state is not None:
		queryset = queryset.filter(state=_parse_state(state))
	user_id = request.GET.get("userId")
	if user_id is not None:
		try:
			queryset = queryset.filter(user_id=int(user_id))
		except ValueError:
			raise ValidationError("userId must be an integer")
	return queryset


def _listing(request, queryset):
	try:
		queryset = _filtered(request, queryset)
		page, limit = page_params(request)
	except ValidationError as e:
		return validation_failed(e)
	rows, pagination = paginate(queryset.select_related("user").order_by("-created_at", "-id"), page, limit)
	return ok([proposal_json(p) for p in rows], pagination=pagination)


def _get_proposal(proposal_id):
	return Proposal.objects.select_related("user").filter(id=proposal_id).first()


def _submission_response(result: services.SubmissionResult):
	data = proposal_json(result.proposal)
	if result.warning:
		return ok(data, status=201, txHash=result.tx_hash, warning=result.warning, retry="publish")
	return ok(data, status=201, message="Proposal submitted", txHash=result.tx_hash)


def _submission_failed(e: GovernanceError):
	if isinstance(e, ChainSubmissionError):
		return fail(e.message, status=e.status, data={"draft": proposal_json(e.proposal)}, txHash=e.tx_hash or None, retry="resubmit")
	return governance_failed(e)


# --- Collection --------------------------------------------------------------

def proposals(request):
	"""
	GET: Paginated proposals, newest first
	POST: Create a draft record directly (no chain interaction)
	"""
	if request.method == "GET":
		return _listing(request, Proposal.objects.all())
	if request.method == "POST":
		return _create(request)
	return method_not_allowed("GET", "POST")


def _create(request):
	try:
		body = read_json(request)
	except ValidationError as e:
		return validation_failed(e)

	onchain_id = body.get("onchain_id")
	title = body.get("title")
	description = body.get("description")
	user_id = body.get("userId")
	if onchain_id in (None, "") or not title or not description or user_id is None:
		return fail("onchain_id, title, description and userId are required", status=400)

	if not isinstance(title, str) or not isinstance(description, str):
		return fail("title and description must be strings", status=400)
	try:
		onchain_id = canonical_onchain_id(onchain_id)
	except ValueError:
		return fail("onchain_id must be a decimal uint256", status=400)
	if len(title) > services.MAX_TITLE_LENGTH:
		return fail(f"title must be at most {services.MAX_TITLE_LENGTH} characters", status=400)
	try:
		published = _parse_bool(body.get("published", False), "published")
		user = User.objects.filter(id=int(user_id)).first()
	except ValidationError as e:
		return validation_failed(e)
	except (TypeError, ValueError):
		return fail("userId must be an integer", status=400)
	if user is None:
		return fail("User not found", status=404)

	try:
		with transaction.atomic():
			proposal = Proposal.objects.create(
				onchain_id=onchain_id, title=title, description=description, published=published, user=user,
			)
	except IntegrityError:
		return fail("Proposal with this onchain_id already exists", status=409)
	logger.info("Proposal %s created directly (onchain_id=%s)", proposal.id, onchain_id)
	return ok(proposal_json(proposal), status=201, message="Proposal created")


def stats(request):
	"""
	GET: Counts overall, by publish status and by state
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	total = Proposal.objects.count()
	published = Proposal.objects.filter(published=True).count()
	counts = dict(Proposal.objects.values_list("state").annotate(n=Count("id")).order_by())
	by_state = {state.name: counts.get(state.value, 0) for state in ProposalState}
	return ok({"total": total, "published": published, "drafts": total - published, "byState": by_state})


def by_onchain_id(request, onchain_id: str):
	"""
	GET: One proposal by its on-chain id
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	try:
		onchain_id = canonical_onchain_id(onchain_id)
	except ValueError:
		return fail("onchainId must be a decimal uint256", status=400)
	proposal = Proposal.objects.select_related("user").filter(onchain_id=onchain_id).first()
	if proposal is None:
		return fail("Proposal not found", status=404)
	return ok(proposal_json(proposal))


def by_user(request, user_id: int):
	"""
	GET: Paginated proposals of one user
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	if not User.objects.filter(id=user_id).exists():
		return fail("User not found", status=404)
	return _listing(request, Proposal.objects.filter(user_id=user_id))


# --- Single record -----------------------------------------------------------

def proposal_detail(request, proposal_id: int):
	"""
	GET: One proposal
	PUT: Administrative update of content, publish flag, state and vote counters
	DELETE: Remove the record
	"""
	if request.method not in ("GET", "PUT", "DELETE"):
		return method_not_allowed("GET", "PUT", "DELETE")
	proposal = _get_proposal(proposal_id)
	if proposal is None:
		return fail("Proposal not found", status=404)

	if request.method == "GET":
		return ok(proposal_json(proposal))
	if request.method == "DELETE":
		proposal.delete()
		logger.info("Proposal %s deleted", proposal_id)
		return ok(message="Proposal deleted successfully")

	try:
		body = read_json(request)
		changed = _apply_update(proposal, body)
	except ValidationError as e:
		return validation_failed(e)
	if not changed:
		return fail("No fields to update", status=400)
	proposal.save(update_fields=changed + ["updated_at"])
	logger.info("Proposal %s updated: %s", proposal.id, ", ".join(changed))
	return ok(proposal_json(proposal), message="Proposal updated")


def _apply_update(proposal: Proposal, body: dict) -> list[str]:
	changed = []
	if "title" in body:
		title = body["title"]
		if not isinstance(title, str) or not title.strip():
			raise ValidationError("title must be a non-empty string")
		if len(title) > services.MAX_TITLE_LENGTH:
			raise ValidationError(f"title must be at most {services.MAX_TITLE_LENGTH} characters")
		proposal.title = title
		changed.append("title")
	if "description" in body:
		description = body["description"]
		if not isinstance(description, str) or not description.strip():
			raise ValidationError("description must be a non-empty string")
		proposal.description = description
		changed.append("description")
	if "published" in body:
		proposal.published = _parse_bool(body["published"], "published")
		changed.append("published")
	if "state" in body:
		proposal.state = _parse_state(body["state"])
		changed.append("state")
	for key, field in VOTE_FIELDS.items():
		if key in body:
			setattr(proposal, field, _parse_vote_count(body[key], key))
			changed.append(field)
	return changed


def proposal_votes(request, proposal_id: int):
	"""
	PATCH: Overwrite one or more cached vote counters
	"""
	if request.method != "PATCH":
		return method_not_allowed("PATCH")
	proposal = _get_proposal(proposal_id)
	if proposal is None:
		return fail("Proposal not found", status=404)
	try:
		body = read_json(request)
		updates = {field: _parse_vote_count(body[key], key) for key, field in VOTE_FIELDS.items() if key in body}
	except ValidationError as e:
		return validation_failed(e)
	if not updates:
		return fail("At least one of for, against or abstain is required", status=400)

	for field, value in updates.items():
		setattr(proposal, field, value)
	proposal.save(update_fields=list(updates) + ["updated_at"])
	return ok(votes_json(proposal), message="Votes updated")


# --- Chain-backed actions ----------------------------------------------------

def submit(request):
	"""
	POST: Submit a proposal for the session user through the whole pipeline
	"""
	if request.method != "POST":
		return method_not_allowed("POST")
	user = session_user(request)
	if user is None:
		return fail("Not authenticated", status=401)
	try:
		body = read_json(request)
		result = services.submit_proposal(
			user,
			body.get("title"),
			body.get("description"),
			body.get("targets"),
			body.get("values"),
			body.get("calldatas"),
		)
	except ValidationError as e:
		return validation_failed(e)
	except GovernanceError as e:
		logger.warning("Proposal submission failed for user %s: %s", user.id, e.message)
		return _submission_failed(e)
	return _submission_response(result)


def resubmit(request, proposal_id: int):
	"""
	POST: Retry propose() for an unpublished draft of the session user
	"""
	if request.method != "POST":
		return method_not_allowed("POST")
	user = session_user(request)
	if user is None:
		return fail("Not authenticated", status=401)
	proposal = _get_proposal(proposal_id)
	if proposal is None:
		return fail("Proposal not found", status=404)
	if proposal.user_id != user.id:
		return fail("Only the proposer can resubmit this proposal", status=403)
	try:
		result = services.resubmit_proposal(proposal)
	except ValidationError as e:
		return validation_failed(e)
	except GovernanceError as e:
		return _submission_failed(e)
	return _submission_response(result)


def publish(request, proposal_id: int):
	"""
	POST: Mark a draft published once the Governor knows it (optional {txHash})
	"""
	if request.method != "POST":
		return method_not_allowed("POST")
	user = session_user(request)
	if user is None:
		return fail("Not authenticated", status=401)
	proposal = _get_proposal(proposal_id)
	if proposal is None:
		return fail("Proposal not found", status=404)
	if proposal.user_id != user.id:
		return fail("Only the proposer can publish this proposal", status=403)
	try:
		body = read_json(request)
		proposal = services.publish_confirmed(proposal, body.get("txHash") or "")
	except ValidationError as e:
		return validation_failed(e)
	except GovernanceError as e:
		return governance_failed(e)
	return ok(proposal_json(proposal), message="Proposal published")


def onchain_view(request, proposal_id: int):
	"""
	GET: Live state, votes, snapshot, deadline and quorum from the Governor
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	proposal = _get_proposal(proposal_id)
	if proposal is None:
		return fail("Proposal not found", status=404)
	try:
		summary = GovernorAdapter.from_settings().proposal_summary(int(proposal.onchain_id))
	except GovernanceError as e:
		return governance_failed(e)
	return ok(_stringify(summary))


def _stringify(summary: dict) -> dict:
	"""
	uint256 values exceed JS safe integers; send them as strings
	"""
	out = dict(summary)
	out["proposal_id"] = str(summary["proposal_id"])
	out["votes"] = {k: str(v) for k, v in summary["votes"].items()}
	if summary.get("quorum") is not None:
		out["quorum"] = str(summary["quorum"])
	return out
