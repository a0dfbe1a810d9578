import pytest

from core.models import Proposal, User

from .conftest import OPERATOR_ADDRESS, SIGNER_ADDRESS, sign

pytestmark = pytest.mark.django_db

CHALLENGE = "Please sign this message to authenticate"


@pytest.fixture(autouse=True)
def challenge(settings):
	settings.AUTH_CHALLENGE_MESSAGE = CHALLENGE


def test_auth_creates_user_and_session(client):
	r = client.post("/api/users/auth", {"message": CHALLENGE, "signature": sign(CHALLENGE)}, content_type="application/json")
	assert r.status_code == 200
	body = r.json()
	assert body["success"] is True
	assert body["requestId"]
	assert body["data"]["isNewUser"] is True
	assert body["data"]["address"] == SIGNER_ADDRESS
	assert body["data"]["user"]["address"] == SIGNER_ADDRESS.lower()

	me = client.get("/api/users/me").json()
	assert me["data"]["id"] == body["data"]["user"]["id"]


def test_auth_second_login_is_not_new(client, user):
	r = client.post("/api/users/auth", {"message": CHALLENGE, "signature": sign(CHALLENGE)}, content_type="application/json")
	assert r.json()["data"]["isNewUser"] is False
	assert User.objects.count() == 1


@pytest.mark.parametrize("payload, error", [
	({"message": CHALLENGE}, "Message and signature are required"),
	({"signature": "0x00"}, "Message and signature are required"),
	({"message": CHALLENGE, "signature": "0x1234"}, "Signature must be a valid hex string"),
	({"message": "hello", "signature": sign("hello")}, "Unexpected challenge message"),
])
def test_auth_rejects_bad_requests(client, payload, error):
	r = client.post("/api/users/auth", payload, content_type="application/json")
	assert r.status_code == 400
	assert r.json() == {"success": False, "error": error, "requestId": r["X-Request-ID"]}
	assert not User.objects.exists()


def test_auth_rejects_invalid_json(client):
	r = client.post("/api/users/auth", "{not json", content_type="application/json")
	assert r.status_code == 400


def test_me_requires_session(client):
	assert client.get("/api/users/me").status_code == 401


def test_list_users_newest_first(client, user, other_user):
	body = client.get("/api/users").json()
	assert body["count"] == 2
	assert [u["id"] for u in body["data"]] == [other_user.id, user.id]


def test_user_detail_and_lookup_by_address(client, user):
	assert client.get(f"/api/users/{user.id}").json()["data"]["address"] == user.address
	assert client.get(f"/api/users/address/{SIGNER_ADDRESS.upper().replace('0X', '0x')}").json()["data"]["id"] == user.id
	assert client.get("/api/users/999").status_code == 404
	assert client.get(f"/api/users/address/{OPERATOR_ADDRESS}").status_code == 404


def test_delete_user(client, user):
	assert client.delete(f"/api/users/{user.id}").status_code == 200
	assert not User.objects.exists()


def test_delete_user_with_proposals_conflicts(client, user):
	Proposal.objects.create(onchain_id="1", title="T", description="D", user=user)
	r = client.delete(f"/api/users/{user.id}")
	assert r.status_code == 409
	assert User.objects.filter(id=user.id).exists()


def test_update_status(client, user):
	r = client.patch(f"/api/users/{user.id}/status", {"status": "banned"}, content_type="application/json")
	assert r.status_code == 200
	assert r.json()["data"]["status"] == "banned"
	user.refresh_from_db()
	assert user.status == "banned"

	assert client.patch(f"/api/users/{user.id}/status", {}, content_type="application/json").status_code == 400
	assert client.patch("/api/users/999/status", {"status": "x"}, content_type="application/json").status_code == 404


def test_wrong_method(client, user):
	r = client.post("/api/users/me")
	assert r.status_code == 405
	assert r["Allow"] == "GET"
