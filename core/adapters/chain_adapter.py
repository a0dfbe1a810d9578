"""Adapter over the Governor, votes token and Timelock contracts.

Reads are plain eth_call's. Writes are signed with the operator key (or sent from the
node's unlocked account on a dev chain) and block until the receipt is mined.
Every web3/RPC failure is re-raised as ChainReadError / ChainWriteError.
"""

import logging

from django.conf import settings
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import Web3Exception
from web3.logs import DISCARD

from core.abi import GOVERNOR_ABI, VOTES_TOKEN_ABI, TIMELOCK_ABI
from core.adapters.wallet_adapter import WalletAdapter
from core.exceptions import ChainReadError, ChainWriteError
from core.models import ProposalState

logger = logging.getLogger(__name__)

# requests' connection errors are OSErrors; ABI encoding problems are ValueError/TypeError
RPC_ERRORS = (Web3Exception, OSError, ValueError, TypeError)


class GovernorAdapter:
	"""
	One instance per request; holds a Web3 client and the three contract handles.
	"""

	def __init__(self, w3, governor_address: str, token_address: str, timelock_address: str, *, account=None, tx_timeout: int = 120):
		self.w3 = w3
		self.account = account
		self.tx_timeout = tx_timeout
		self.governor = w3.eth.contract(address=Web3.to_checksum_address(governor_address), abi=GOVERNOR_ABI)
		self.token = w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=VOTES_TOKEN_ABI)
		self.timelock = w3.eth.contract(address=Web3.to_checksum_address(timelock_address), abi=TIMELOCK_ABI)

	@classmethod
	def from_settings(cls) -> "GovernorAdapter":
		provider = Web3.HTTPProvider(settings.GOVERNANCE_RPC_URL, request_kwargs={"timeout": settings.GOVERNANCE_RPC_TIMEOUT})
		return cls(
			Web3(provider),
			settings.GOVERNOR_ADDRESS,
			settings.TOKEN_ADDRESS,
			settings.TIMELOCK_ADDRESS,
			account=WalletAdapter.operator_account(),
			tx_timeout=settings.GOVERNANCE_TX_TIMEOUT,
		)

	@property
	def governor_address(self) -> str:
		return self.governor.address

	def operator_address(self) -> str:
		"""
		Address chain writes are sent from
		"""
		if self.account is not None:
			return self.account.address
		try:
			accounts = self.w3.eth.accounts
		except RPC_ERRORS as e:
			raise ChainReadError(f"eth_accounts failed: {e}") from e
		if not accounts:
			raise ChainWriteError("No signer configured and the node exposes no unlocked account", status=503)
		return accounts[0]

	# --- Reads ---------------------------------------------------------------

	def _call(self, fn, what: str):
		try:
			return fn.call()
		except RPC_ERRORS as e:
			logger.warning("Chain read failed: %s: %s", what, e)
			raise ChainReadError(f"{what} failed: {e}") from e

	def get_proposal_id(self, targets, values, calldatas, desc_hash: bytes) -> int:
		fn = self.governor.functions.getProposalId(
			_checksum_all(targets), [int(v) for v in values], _as_bytes(calldatas), bytes(desc_hash),
		)
		return int(self._call(fn, "getProposalId"))

	def proposal_state(self, proposal_id: int) -> ProposalState:
		return ProposalState(int(self._call(self.governor.functions.state(int(proposal_id)), "state")))

	def proposal_votes(self, proposal_id: int) -> dict:
		against, for_, abstain = self._call(self.governor.functions.proposalVotes(int(proposal_id)), "proposalVotes")
		return {"against": int(against), "for": int(for_), "abstain": int(abstain)}

	def proposal_snapshot(self, proposal_id: int) -> int:
		return int(self._call(self.governor.functions.proposalSnapshot(int(proposal_id)), "proposalSnapshot"))

	def proposal_deadline(self, proposal_id: int) -> int:
		return int(self._call(self.governor.functions.proposalDeadline(int(proposal_id)), "proposalDeadline"))

	def quorum(self, timepoint: int) -> int:
		return int(self._call(self.governor.functions.quorum(int(timepoint)), "quorum"))

	def proposal_threshold(self) -> int:
		return int(self._call(self.governor.functions.proposalThreshold(), "proposalThreshold"))

	def has_voted(self, proposal_id: int, account: str) -> bool:
		fn = self.governor.functions.hasVoted(int(proposal_id), Web3.to_checksum_address(account))
		return bool(self._call(fn, "hasVoted"))

	def proposal_summary(self, proposal_id: int) -> dict:
		"""
		Live view of a proposal. Quorum is only defined once the snapshot is in the past.
		"""
		state = self.proposal_state(proposal_id)
		snapshot = self.proposal_snapshot(proposal_id)
		quorum = None if state == ProposalState.PENDING else self.quorum(snapshot)
		return {
			"proposal_id": str(proposal_id),
			"state": int(state),
			"state_name": state.name,
			"votes": self.proposal_votes(proposal_id),
			"snapshot": snapshot,
			"deadline": self.proposal_deadline(proposal_id),
			"quorum": quorum,
		}

	def token_symbol(self) -> str:
		return self._call(self.token.functions.symbol(), "symbol")

	def balance_of(self, account: str) -> int:
		return int(self._call(self.token.functions.balanceOf(Web3.to_checksum_address(account)), "balanceOf"))

	def get_votes(self, account: str) -> int:
		return int(self._call(self.token.functions.getVotes(Web3.to_checksum_address(account)), "getVotes"))

	def get_past_votes(self, account: str, timepoint: int) -> int:
		fn = self.token.functions.getPastVotes(Web3.to_checksum_address(account), int(timepoint))
		return int(self._call(fn, "getPastVotes"))

	def has_role(self, role: bytes, account: str) -> bool:
		return bool(self._call(self.timelock.functions.hasRole(role, Web3.to_checksum_address(account)), "hasRole"))

	# --- Writes --------------------------------------------------------------

	def _transact(self, fn, what: str) -> dict:
		"""
		Send, wait for the receipt, and fail unless status == 1.
		"""
		tx_hash = ""
		try:
			if self.account is not None:
				tx = fn.build_transaction({
					"from": self.account.address,
					"nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
				})
				signed = self.account.sign_transaction(tx)
				raw_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
			else:
				raw_hash = fn.transact({"from": self.operator_address()})
			tx_hash = Web3.to_hex(raw_hash)
			logger.info("Sent %s tx %s", what, tx_hash)
			receipt = self.w3.eth.wait_for_transaction_receipt(raw_hash, timeout=self.tx_timeout)
		except ChainReadError as e:
			raise ChainWriteError(e.message) from e
		except RPC_ERRORS as e:
			logger.warning("Chain write failed: %s: %s", what, e)
			raise ChainWriteError(f"{what} failed: {e}", tx_hash=tx_hash) from e

		if receipt["status"] != 1:
			raise ChainWriteError(f"{what} reverted in tx {tx_hash}", tx_hash=tx_hash)
		logger.info("Confirmed %s tx %s in block %s", what, tx_hash, receipt["blockNumber"])
		return receipt

	def propose(self, targets, values, calldatas, description: str) -> tuple[str, int | None]:
		"""
		Returns (tx_hash, proposalId from the ProposalCreated event or None if absent)
		"""
		fn = self.governor.functions.propose(_checksum_all(targets), [int(v) for v in values], _as_bytes(calldatas), description)
		receipt = self._transact(fn, "propose")
		events = self.governor.events.ProposalCreated().process_receipt(receipt, errors=DISCARD)
		proposal_id = int(events[0]["args"]["proposalId"]) if events else None
		return Web3.to_hex(receipt["transactionHash"]), proposal_id

	def cast_vote(self, proposal_id: int, support: int) -> str:
		receipt = self._transact(self.governor.functions.castVote(int(proposal_id), int(support)), "castVote")
		return Web3.to_hex(receipt["transactionHash"])

	def queue(self, proposal_id: int) -> str:
		receipt = self._transact(self.governor.functions.queue(int(proposal_id)), "queue")
		return Web3.to_hex(receipt["transactionHash"])

	def execute(self, proposal_id: int) -> str:
		receipt = self._transact(self.governor.functions.execute(int(proposal_id)), "execute")
		return Web3.to_hex(receipt["transactionHash"])

	def delegate(self, delegatee: str) -> str:
		receipt = self._transact(self.token.functions.delegate(Web3.to_checksum_address(delegatee)), "delegate")
		return Web3.to_hex(receipt["transactionHash"])

	def grant_role(self, role: bytes, account: str) -> str:
		receipt = self._transact(self.timelock.functions.grantRole(role, Web3.to_checksum_address(account)), "grantRole")
		return Web3.to_hex(receipt["transactionHash"])


def _checksum_all(addresses) -> list[str]:
	return [Web3.to_checksum_address(a) for a in addresses]


def _as_bytes(calldatas) -> list[bytes]:
	return [bytes(HexBytes(c)) for c in calldatas]
