"""Database models for the governance dashboard.


Tables:
- User: a wallet address that has logged in by signing the challenge message
- Proposal: off-chain shadow of a Governor proposal (title, description, draft/publish status)

The Governor contract is authoritative for proposal state and votes; the state and
vote columns here are an advisory cache written only by the admin update path.
"""

from django.db import models


class ProposalState(models.IntegerChoices):
	"""
	Mirrors IGovernor.ProposalState
	"""
	PENDING = 0, "Pending"
	ACTIVE = 1, "Active"
	CANCELED = 2, "Canceled"
	DEFEATED = 3, "Defeated"
	SUCCEEDED = 4, "Succeeded"
	QUEUED = 5, "Queued"
	EXPIRED = 6, "Expired"
	EXECUTED = 7, "Executed"


class VoteType(models.IntegerChoices):
	AGAINST = 0, "Against"
	FOR = 1, "For"
	ABSTAIN = 2, "Abstain"


class User(models.Model):
	"""
	Created implicitly on the first successful signature verification.

	address is stored lower-cased so lookups are case-insensitive
	"""
	id = models.BigAutoField(primary_key=True)
	address = models.CharField(max_length=42, unique=True)
	status = models.CharField(max_length=20, default="active")
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	def save(self, *args, **kwargs):
		self.address = (self.address or "").strip().lower()
		super().save(*args, **kwargs)

	def __str__(self):
		return self.address


class Proposal(models.Model):
	"""
	Draft record keyed by the on-chain proposal id.

	onchain_id is unique: it prevents double-submission of the same logical proposal and
	is the only concurrency guard between two users submitting identical proposals.
	The propose() arguments are kept so a failed chain step can be resubmitted unchanged.
	"""
	id = models.BigAutoField(primary_key=True)
	onchain_id = models.CharField(max_length=100, unique=True) # uint256 as decimal string
	title = models.CharField(max_length=500)
	description = models.TextField()
	published = models.BooleanField(default=False)
	state = models.IntegerField(choices=ProposalState.choices, default=ProposalState.PENDING)
	votes_for = models.BigIntegerField(default=0)
	votes_against = models.BigIntegerField(default=0)
	votes_abstain = models.BigIntegerField(default=0)
	user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="proposals")

	# propose() arguments, exactly as used for the id calculation
	targets = models.JSONField(default=list, blank=True)
	values = models.JSONField(default=list, blank=True)
	calldatas = models.JSONField(default=list, blank=True)

	tx_hash = models.CharField(max_length=66, blank=True, default="")
	last_error = models.TextField(blank=True, default="")
	submit_attempts = models.IntegerField(default=0)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		indexes = [
			models.Index(fields=["published", "state"], name="core_proposal_pub_state_idx"),
		]

	@property
	def combined_description(self) -> str:
		"""
		The description string sent to propose(); its hash is part of the on-chain id
		"""
		return combine_description(self.title, self.description)

	def __str__(self):
		return f"{self.onchain_id}: {self.title}"


def combine_description(title: str, description: str) -> str:
	return f"{title}\n\n{description}"
