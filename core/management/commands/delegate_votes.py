"""Self-delegate the operator's voting power so its balance counts as votes."""

from django.core.management.base import BaseCommand, CommandError

from core.exceptions import GovernanceError
from core.services import GovernanceServices


class Command(BaseCommand):
	help = "Delegate the operator account's tokens to itself"

	def handle(self, *args, **options):
		try:
			tx_hash = GovernanceServices.self_delegate()
		except GovernanceError as e:
			raise CommandError(e.message) from e
		if tx_hash is None:
			self.stdout.write("Votes already match balance; nothing to delegate")
			return
		self.stdout.write(self.style.SUCCESS(f"Delegated (tx {tx_hash})"))
