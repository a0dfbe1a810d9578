"""Print the live Governor view of one proposal."""

from django.core.management.base import BaseCommand, CommandError

from core.adapters.chain_adapter import GovernorAdapter
from core.constants import units_to_tokens
from core.exceptions import GovernanceError


class Command(BaseCommand):
	help = "Show state, votes, snapshot and deadline of an on-chain proposal"

	def add_arguments(self, parser):
		parser.add_argument("onchain_id", type=int)

	def handle(self, *args, **options):
		try:
			summary = GovernorAdapter.from_settings().proposal_summary(options["onchain_id"])
		except GovernanceError as e:
			raise CommandError(e.message) from e

		votes = summary["votes"]
		self.stdout.write(f"Proposal {summary['proposal_id']}")
		self.stdout.write(f"  state:    {summary['state_name']} ({summary['state']})")
		self.stdout.write(f"  for:      {units_to_tokens(votes['for'])}")
		self.stdout.write(f"  against:  {units_to_tokens(votes['against'])}")
		self.stdout.write(f"  abstain:  {units_to_tokens(votes['abstain'])}")
		self.stdout.write(f"  snapshot: {summary['snapshot']}")
		self.stdout.write(f"  deadline: {summary['deadline']}")
		if summary["quorum"] is not None:
			self.stdout.write(f"  quorum:   {units_to_tokens(summary['quorum'])}")
