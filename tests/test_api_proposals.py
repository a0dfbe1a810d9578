from unittest.mock import patch

import pytest
from django.db import DatabaseError

from core.constants import default_actions, description_hash, expected_proposal_id
from core.exceptions import ChainReadError, ChainWriteError
from core.models import Proposal, ProposalState

from .conftest import PROPOSE_TX

pytestmark = pytest.mark.django_db


def make(user, onchain_id, **kw):
	kw.setdefault("title", f"Proposal {onchain_id}")
	kw.setdefault("description", "Body")
	return Proposal.objects.create(onchain_id=str(onchain_id), user=user, **kw)


# --- Listing -----------------------------------------------------------------

def test_list_is_paginated_newest_first(client, user):
	for i in range(12):
		make(user, i)
	body = client.get("/api/proposals?page=2&limit=5").json()
	assert body["pagination"] == {"page": 2, "limit": 5, "total": 12, "totalPages": 3}
	assert [p["onchain_id"] for p in body["data"]] == ["6", "5", "4", "3", "2"]
	assert body["data"][0]["user"]["id"] == user.id


def test_list_filters(client, user, other_user):
	make(user, 1, published=True, state=ProposalState.ACTIVE)
	make(user, 2)
	make(other_user, 3, published=True)

	ids = lambda qs: sorted(p["onchain_id"] for p in client.get(f"/api/proposals?{qs}").json()["data"])
	assert ids("published=true") == ["1", "3"]
	assert ids("published=false") == ["2"]
	assert ids("state=1") == ["1"]
	assert ids(f"userId={other_user.id}") == ["3"]


@pytest.mark.parametrize("qs", ["limit=0", "limit=101", "page=0", "page=x", "state=8", "published=maybe", "userId=abc"])
def test_list_rejects_bad_query(client, qs):
	assert client.get(f"/api/proposals?{qs}").status_code == 400


def test_stats(client, user):
	make(user, 1, published=True, state=ProposalState.ACTIVE)
	make(user, 2)
	data = client.get("/api/proposals/stats").json()["data"]
	assert (data["total"], data["published"], data["drafts"]) == (2, 1, 1)
	assert data["byState"]["ACTIVE"] == 1
	assert data["byState"]["PENDING"] == 1
	assert data["byState"]["EXECUTED"] == 0


def test_lookups(client, user, other_user):
	p = make(user, 77)
	assert client.get(f"/api/proposals/{p.id}").json()["data"]["title"] == "Proposal 77"
	assert client.get("/api/proposals/onchain/77").json()["data"]["id"] == p.id
	assert client.get("/api/proposals/onchain/78").status_code == 404
	assert client.get(f"/api/proposals/user/{user.id}").json()["pagination"]["total"] == 1
	assert client.get(f"/api/proposals/user/{other_user.id}").json()["data"] == []
	assert client.get("/api/proposals/user/999").status_code == 404


# --- Direct CRUD -------------------------------------------------------------

def test_create_draft_record(client, user):
	payload = {"onchain_id": "123", "title": "T", "description": "D", "userId": user.id}
	r = client.post("/api/proposals", payload, content_type="application/json")
	assert r.status_code == 201
	assert r.json()["data"]["published"] is False

	r = client.post("/api/proposals", payload, content_type="application/json")
	assert r.status_code == 409


def test_create_validation(client, user):
	post = lambda payload: client.post("/api/proposals", payload, content_type="application/json").status_code
	assert post({"title": "T", "description": "D", "userId": user.id}) == 400
	assert post({"onchain_id": "12a", "title": "T", "description": "D", "userId": user.id}) == 400
	assert post({"onchain_id": "1", "title": "T", "description": "D", "userId": 999}) == 404


def test_create_canonicalises_onchain_id(client, user):
	post = lambda onchain_id: client.post(
		"/api/proposals", {"onchain_id": onchain_id, "title": "T", "description": "D", "userId": user.id}, content_type="application/json",
	)
	assert post("7").status_code == 201
	assert post("07").status_code == 409
	assert post("007").status_code == 409
	assert list(Proposal.objects.values_list("onchain_id", flat=True)) == ["7"]
	assert client.get("/api/proposals/onchain/007").json()["data"]["onchain_id"] == "7"


@pytest.mark.parametrize("onchain_id", ["²", "٧", str(2 ** 256), "-1", 1.5])
def test_create_rejects_non_uint256_ids(client, user, onchain_id):
	payload = {"onchain_id": onchain_id, "title": "T", "description": "D", "userId": user.id}
	assert client.post("/api/proposals", payload, content_type="application/json").status_code == 400
	assert not Proposal.objects.exists()


def test_admin_update(client, user):
	p = make(user, 5)
	payload = {"title": "New", "published": True, "state": 4, "for": 10 ** 18, "against": 0}
	r = client.put(f"/api/proposals/{p.id}", payload, content_type="application/json")
	assert r.status_code == 200
	p.refresh_from_db()
	assert (p.title, p.published, p.state, p.votes_for) == ("New", True, ProposalState.SUCCEEDED, 10 ** 18)


@pytest.mark.parametrize("payload", [{}, {"state": 9}, {"for": -1}, {"against": 2 ** 63}, {"title": ""}, {"abstain": "3"}])
def test_admin_update_validation(client, user, payload):
	p = make(user, 5)
	assert client.put(f"/api/proposals/{p.id}", payload, content_type="application/json").status_code == 400


def test_patch_votes(client, user):
	p = make(user, 5)
	r = client.patch(f"/api/proposals/{p.id}/votes", {"abstain": 3}, content_type="application/json")
	assert r.json()["data"] == {"id": p.id, "onchain_id": "5", "for": 0, "against": 0, "abstain": 3}
	assert client.patch(f"/api/proposals/{p.id}/votes", {}, content_type="application/json").status_code == 400


def test_delete(client, user):
	p = make(user, 5)
	assert client.delete(f"/api/proposals/{p.id}").status_code == 200
	assert client.get(f"/api/proposals/{p.id}").status_code == 404


# --- Submission pipeline -----------------------------------------------------

def expected_id(user):
	targets, values, calldatas = default_actions(user.address)
	return str(expected_proposal_id(targets, values, calldatas, description_hash("Test\n\nBody")))


def submit(client, **payload):
	payload.setdefault("title", "Test")
	payload.setdefault("description", "Body")
	return client.post("/api/proposals/submit", payload, content_type="application/json")


def test_submit_requires_login(client, settings_chain):
	assert submit(client).status_code == 401
	settings_chain.get_proposal_id.assert_not_called()


def test_submit_end_to_end(auth_client, user, settings_chain):
	r = submit(auth_client)
	assert r.status_code == 201
	body = r.json()
	assert body["txHash"] == PROPOSE_TX
	assert body["data"]["onchain_id"] == expected_id(user)
	assert body["data"]["published"] is True
	assert "warning" not in body


def test_submit_duplicate_conflicts(auth_client, settings_chain):
	submit(auth_client)
	r = submit(auth_client)
	assert r.status_code == 409
	assert r.json()["error"] == "Proposal with this onchain_id already exists"


def test_submit_identifier_failure(auth_client, settings_chain):
	settings_chain.get_proposal_id.side_effect = ChainReadError("getProposalId failed: connection refused")
	r = submit(auth_client)
	assert r.status_code == 502
	assert not Proposal.objects.exists()


def test_submit_chain_failure_returns_draft(auth_client, user, settings_chain):
	settings_chain.propose.side_effect = ChainWriteError("propose failed: insufficient funds")
	r = submit(auth_client)
	assert r.status_code == 502
	body = r.json()
	assert body["retry"] == "resubmit"
	assert body["data"]["draft"]["onchain_id"] == expected_id(user)
	assert body["data"]["draft"]["published"] is False
	assert body["data"]["draft"]["last_error"] == "propose failed: insufficient funds"


def test_submit_publish_failure_returns_warning(auth_client, settings_chain):
	with patch("core.services.publish", side_effect=DatabaseError("database is locked")):
		r = submit(auth_client)
	assert r.status_code == 201
	body = r.json()
	assert body["retry"] == "publish"
	assert body["warning"]
	assert body["data"]["published"] is False


def test_submit_validates_actions(auth_client, settings_chain):
	r = submit(auth_client, targets=["0x1234"], values=[0], calldatas=["0x"])
	assert r.status_code == 400
	settings_chain.get_proposal_id.assert_not_called()


def test_resubmit_and_publish(auth_client, settings_chain):
	propose = settings_chain.propose.side_effect
	settings_chain.propose.side_effect = ChainWriteError("propose failed: timeout")
	draft_id = submit(auth_client).json()["data"]["draft"]["id"]

	settings_chain.propose.side_effect = propose
	r = auth_client.post(f"/api/proposals/{draft_id}/resubmit")
	assert r.status_code == 201
	assert r.json()["data"]["published"] is True

	r = auth_client.post(f"/api/proposals/{draft_id}/resubmit")
	assert r.status_code == 400


def test_resubmit_by_other_user_is_forbidden(client, other_user, user, settings_chain):
	p = make(user, 5)
	session = client.session
	session["user_id"] = other_user.id
	session.save()
	assert client.post(f"/api/proposals/{p.id}/resubmit").status_code == 403


def test_publish_after_confirmation(auth_client, user, settings_chain):
	p = make(user, 5)
	r = auth_client.post(f"/api/proposals/{p.id}/publish", {"txHash": PROPOSE_TX}, content_type="application/json")
	assert r.status_code == 200
	p.refresh_from_db()
	assert p.published is True and p.tx_hash == PROPOSE_TX
	settings_chain.proposal_state.assert_called_once_with(5)


def test_publish_unknown_on_chain(auth_client, user, settings_chain):
	p = make(user, 5)
	settings_chain.proposal_state.side_effect = ChainReadError("state failed: GovernorNonexistentProposal")
	r = auth_client.post(f"/api/proposals/{p.id}/publish", {}, content_type="application/json")
	assert r.status_code == 502
	p.refresh_from_db()
	assert p.published is False


def test_chain_view(client, user, settings_chain):
	p = make(user, 5)
	settings_chain.proposal_summary.return_value = {
		"proposal_id": "5", "state": 1, "state_name": "ACTIVE",
		"votes": {"against": 0, "for": 10 ** 20, "abstain": 0},
		"snapshot": 10, "deadline": 60, "quorum": 4 * 10 ** 18,
	}
	data = client.get(f"/api/proposals/{p.id}/chain").json()["data"]
	assert data["state_name"] == "ACTIVE"
	assert data["votes"]["for"] == str(10 ** 20)
	assert data["quorum"] == str(4 * 10 ** 18)
	settings_chain.proposal_summary.assert_called_once_with(5)


def test_publish_by_other_user_is_forbidden(client, user, other_user, settings_chain):
	p = make(user, 5)
	session = client.session
	session["user_id"] = other_user.id
	session.save()
	r = client.post(f"/api/proposals/{p.id}/publish", {}, content_type="application/json")
	assert r.status_code == 403
	settings_chain.proposal_state.assert_not_called()
	p.refresh_from_db()
	assert p.published is False


def test_onchain_lookup_rejects_non_ascii_digits(client):
	assert client.get("/api/proposals/onchain/²").status_code == 400
