"""Adapter over wallet signatures and the operator account.

Users sign with their own wallet in the browser; here we only recover who signed.
Chain writes made by the backend itself are signed with the operator key from settings.
"""

import re

from django.conf import settings
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from eth_utils import is_address

from core.exceptions import InvalidSignature

# 65-byte r||s||v personal_sign signature
SIGNATURE_RE = re.compile(r"^0x[a-fA-F0-9]{130}$")


class WalletAdapter:
	"""
	Pure functions around EIP-191 signatures, address normalisation and the operator key
	"""

	@staticmethod
	def normalize_address(address: str) -> str:
		"""
		Lower-cased 0x address, the form users are stored under
		"""
		address = address.strip() if isinstance(address, str) else ""
		if not is_address(address):
			raise ValueError(f"Not an address: {address!r}")
		return address.lower()


	@staticmethod
	def recover_address(message: str, signature: str) -> str:
		"""
		Return the checksummed address that produced `signature` over `message` (personal_sign).
		"""
		if not isinstance(message, str) or not message:
			raise InvalidSignature("Message must be a non-empty string")
		if not isinstance(signature, str) or not SIGNATURE_RE.match(signature):
			raise InvalidSignature("Signature must be a valid hex string")
		try:
			return Account.recover_message(encode_defunct(text=message), signature=signature)
		except (ValueError, TypeError) as e:
			# eth_keys raises BadSignature (a ValueError) for an unrecoverable r/s/v
			raise InvalidSignature("Invalid signature") from e


	@staticmethod
	def verify_challenge(message: str, signature: str) -> str:
		"""
		Recover the signer of the login challenge; any other message is rejected
		"""
		if message != settings.AUTH_CHALLENGE_MESSAGE:
			raise InvalidSignature("Unexpected challenge message")
		return WalletAdapter.recover_address(message, signature)


	@staticmethod
	def operator_account() -> LocalAccount | None:
		"""
		The account chain writes are signed with, or None to let the node sign (dev nodes)
		"""
		key = getattr(settings, "GOVERNANCE_SIGNER_PRIVATE_KEY", "")
		if not key:
			return None
		return Account.from_key(key)
