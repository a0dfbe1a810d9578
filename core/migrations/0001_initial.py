from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name="User",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("address", models.CharField(max_length=42, unique=True)),
				("status", models.CharField(default="active", max_length=20)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
			],
		),
		migrations.CreateModel(
			name="Proposal",
			fields=[
				("id", models.BigAutoField(primary_key=True, serialize=False)),
				("onchain_id", models.CharField(max_length=100, unique=True)),
				("title", models.CharField(max_length=500)),
				("description", models.TextField()),
				("published", models.BooleanField(default=False)),
				("state", models.IntegerField(choices=[(0, "Pending"), (1, "Active"), (2, "Canceled"), (3, "Defeated"), (4, "Succeeded"), (5, "Queued"), (6, "Expired"), (7, "Executed")], default=0)),
				("votes_for", models.BigIntegerField(default=0)),
				("votes_against", models.BigIntegerField(default=0)),
				("votes_abstain", models.BigIntegerField(default=0)),
				("targets", models.JSONField(blank=True, default=list)),
				("values", models.JSONField(blank=True, default=list)),
				("calldatas", models.JSONField(blank=True, default=list)),
				("tx_hash", models.CharField(blank=True, default="", max_length=66)),
				("last_error", models.TextField(blank=True, default="")),
				("submit_attempts", models.IntegerField(default=0)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				("user", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="proposals", to="core.user")),
			],
			options={
				"indexes": [models.Index(fields=["published", "state"], name="core_proposal_pub_state_idx")],
			},
		),
	]
