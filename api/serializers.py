"""Model → JSON shapes returned by the API."""


def user_json(u):
	return {
		"id": u.id,
		"address": u.address,
		"status": u.status,
		"createdAt": u.created_at.isoformat(),
		"updatedAt": u.updated_at.isoformat(),
	}


def proposal_json(p):
	return {
		"id": p.id,
		"onchain_id": p.onchain_id,
		"title": p.title,
		"description": p.description,
		"published": p.published,
		"state": p.state,
		"for": p.votes_for,
		"against": p.votes_against,
		"abstain": p.votes_abstain,
		"targets": p.targets,
		"values": p.values,
		"calldatas": p.calldatas,
		"tx_hash": p.tx_hash,
		"last_error": p.last_error,
		"userId": p.user_id,
		"user": user_json(p.user),
		"createdAt": p.created_at.isoformat(),
		"updatedAt": p.updated_at.isoformat(),
	}


def votes_json(p):
	return {
		"id": p.id,
		"onchain_id": p.onchain_id,
		"for": p.votes_for,
		"against": p.votes_against,
		"abstain": p.votes_abstain,
	}
