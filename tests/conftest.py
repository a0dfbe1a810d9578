from unittest.mock import MagicMock, patch

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from core.adapters.chain_adapter import GovernorAdapter
from core.constants import description_hash, expected_proposal_id
from core.models import ProposalState, User

# Hardhat account #0; never holds real funds
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OPERATOR_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
GOVERNOR_ADDRESS = "0xCf7Ed3AccA5a467e9e704C703E8D87F634fB0Fc9"
PROPOSE_TX = "0x" + "ab" * 32
VOTE_TX = "0x" + "cd" * 32


def sign(message: str, key: str = SIGNER_KEY) -> str:
	signed = Account.sign_message(encode_defunct(text=message), private_key=key)
	return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def user(db):
	return User.objects.create(address=SIGNER_ADDRESS)


@pytest.fixture
def other_user(db):
	return User.objects.create(address=OPERATOR_ADDRESS)


@pytest.fixture
def chain():
	"""
	GovernorAdapter double that numbers proposals exactly like hashProposal
	"""
	mock = MagicMock(spec=GovernorAdapter)
	mock.governor_address = GOVERNOR_ADDRESS
	mock.get_proposal_id.side_effect = lambda t, v, c, h: expected_proposal_id(t, v, c, h)
	mock.propose.side_effect = lambda t, v, c, d: (PROPOSE_TX, expected_proposal_id(t, v, c, description_hash(d)))
	mock.proposal_state.return_value = ProposalState.PENDING
	mock.operator_address.return_value = OPERATOR_ADDRESS
	mock.has_voted.return_value = False
	mock.cast_vote.return_value = VOTE_TX
	return mock


@pytest.fixture
def settings_chain(chain):
	"""
	Make GovernorAdapter.from_settings() hand out the `chain` double
	"""
	with patch.object(GovernorAdapter, "from_settings", return_value=chain):
		yield chain


@pytest.fixture
def auth_client(client, user):
	session = client.session
	session["user_id"] = user.id
	session.save()
	return client
