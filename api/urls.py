"""Public API surface of the governance dashboard.

- /users/*: wallet login, session identity, user administration
- /proposals/*: draft records, the submission pipeline and its retries
- /chain/*: operator votes, queue/execute, delegation and token reads
- /health, /csrf: operational helpers
"""

from django.urls import path
from .views_ops import health, csrf
from .views_users import users, auth, me, user_detail, user_by_address, user_status
from . import views_proposals as proposals
from . import views_chain as chain


urlpatterns = [
	path("health", health),
	path("csrf", csrf),

	path("users", users),
	path("users/auth", auth),
	path("users/me", me),
	path("users/address/<str:address>", user_by_address),
	path("users/<int:user_id>", user_detail),
	path("users/<int:user_id>/status", user_status),

	path("proposals", proposals.proposals),
	path("proposals/stats", proposals.stats),
	path("proposals/submit", proposals.submit),
	path("proposals/onchain/<str:onchain_id>", proposals.by_onchain_id),
	path("proposals/user/<int:user_id>", proposals.by_user),
	path("proposals/<int:proposal_id>", proposals.proposal_detail),
	path("proposals/<int:proposal_id>/votes", proposals.proposal_votes),
	path("proposals/<int:proposal_id>/resubmit", proposals.resubmit),
	path("proposals/<int:proposal_id>/publish", proposals.publish),
	path("proposals/<int:proposal_id>/chain", proposals.onchain_view),

	path("chain/accounts/<str:address>", chain.account),
	path("chain/proposals/<str:onchain_id>/vote", chain.vote),
	path("chain/proposals/<str:onchain_id>/queue", chain.queue),
	path("chain/proposals/<str:onchain_id>/execute", chain.execute),
	path("chain/delegate", chain.delegate),
]
