"""Grant the Governor PROPOSER_ROLE and EXECUTOR_ROLE on the Timelock when missing."""

from django.core.management.base import BaseCommand, CommandError

from core.exceptions import GovernanceError
from core.services import GovernanceServices


class Command(BaseCommand):
	help = "Grant the Governor the Timelock proposer/executor roles it lacks"

	def handle(self, *args, **options):
		try:
			granted = GovernanceServices.ensure_timelock_roles()
		except GovernanceError as e:
			raise CommandError(e.message) from e
		if not granted:
			self.stdout.write("Governor already holds both Timelock roles")
			return
		self.stdout.write(self.style.SUCCESS(f"Granted {', '.join(granted)}"))
