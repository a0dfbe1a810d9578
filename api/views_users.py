"""User endpoints: wallet login, session identity and basic user administration."""

import logging

from django.core.exceptions import ValidationError
from django.db.models import ProtectedError

from core.exceptions import GovernanceError
from core.models import User
from core.services import GovernanceServices

from .responses import ok, fail, read_json, validation_failed, governance_failed, method_not_allowed
from .serializers import user_json

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def session_user(request):
	"""
	The logged-in User for this session, or None
	"""
	user_id = request.session.get(SESSION_USER_KEY)
	if user_id is None:
		return None
	return User.objects.filter(id=user_id).first()


def users(request):
	"""
	GET: All users, newest first
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	rows = User.objects.order_by("-created_at", "-id")
	return ok([user_json(u) for u in rows], count=len(rows))


def auth(request):
	"""
	POST: Verify a signed challenge, create the user on first login and open a session
	"""
	if request.method != "POST":
		return method_not_allowed("POST")
	try:
		body = read_json(request)
	except ValidationError as e:
		return validation_failed(e)

	message = body.get("message")
	signature = body.get("signature")
	if not message or not signature:
		return fail("Message and signature are required", status=400)

	try:
		user, address, created = GovernanceServices.authenticate_wallet(message, signature)
	except GovernanceError as e:
		logger.warning("Wallet authentication failed: %s", e.message)
		return governance_failed(e)

	request.session.cycle_key()
	request.session[SESSION_USER_KEY] = user.id
	logger.info("User %s authenticated (%s)", user.id, user.address)
	return ok(
		{"user": user_json(user), "address": address, "isNewUser": created},
		message="Authentication successful",
	)


def me(request):
	"""
	GET: The user attached to the current session
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	user = session_user(request)
	if user is None:
		return fail("Not authenticated", status=401)
	return ok(user_json(user))


def user_detail(request, user_id: int):
	"""
	GET: One user
	DELETE: Remove a user that owns no proposals
	"""
	user = User.objects.filter(id=user_id).first()
	if user is None:
		return fail("User not found", status=404)

	if request.method == "GET":
		return ok(user_json(user))
	if request.method == "DELETE":
		try:
			user.delete()
		except ProtectedError:
			return fail("User has proposals and cannot be deleted", status=409)
		logger.info("User %s deleted", user_id)
		return ok(message="User deleted successfully")
	return method_not_allowed("GET", "DELETE")


def user_by_address(request, address: str):
	"""
	GET: Case-insensitive lookup by wallet address
	"""
	if request.method != "GET":
		return method_not_allowed("GET")
	user = User.objects.filter(address=address.strip().lower()).first()
	if user is None:
		return fail("User not found", status=404)
	return ok(user_json(user))


def user_status(request, user_id: int):
	"""
	PATCH: Set a user's status
	"""
	if request.method != "PATCH":
		return method_not_allowed("PATCH")
	try:
		body = read_json(request)
	except ValidationError as e:
		return validation_failed(e)

	status = body.get("status")
	if not status or not isinstance(status, str):
		return fail("Status is required", status=400)
	if len(status) > User._meta.get_field("status").max_length:
		return fail("Status is too long", status=400)

	user = User.objects.filter(id=user_id).first()
	if user is None:
		return fail("User not found", status=404)
	user.status = status
	user.save(update_fields=["status", "updated_at"])
	return ok(user_json(user), message="User status updated")
