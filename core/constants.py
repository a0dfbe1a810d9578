"""Hashing and unit helpers shared across the governance backend.


- description_hash / expected_proposal_id reproduce Governor.hashProposal off-chain.
- PROPOSER_ROLE / EXECUTOR_ROLE are the TimelockController role ids.
- units_to_tokens converts integer vote weights (18 decimals) to human amounts.
"""

import re
from decimal import Decimal, ROUND_DOWN

from eth_abi import encode
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes

TOKEN_DECIMALS = 18
TEN_POW = 10 ** TOKEN_DECIMALS

PROPOSER_ROLE = keccak(text="PROPOSER_ROLE")
EXECUTOR_ROLE = keccak(text="EXECUTOR_ROLE")

# A propose() call needs at least one action; the dashboard default is a no-op call to the proposer
EMPTY_CALLDATA = "0x"

MAX_UINT256 = 2 ** 256 - 1
DECIMAL_ID_RE = re.compile(r"^[0-9]+$")


def description_hash(description: str) -> bytes:
    """
    keccak256 of the UTF-8 description, as the Governor hashes it in propose()
    """
    return keccak(text=description)


def default_actions(proposer: str) -> tuple[list[str], list[int], list[str]]:
    return [proposer], [0], [EMPTY_CALLDATA]


def expected_proposal_id(targets, values, calldatas, desc_hash: bytes) -> int:
    """
    uint256(keccak256(abi.encode(targets, values, calldatas, descriptionHash)))
    """
    encoded = encode(
        ["address[]", "uint256[]", "bytes[]", "bytes32"],
        [
            [to_checksum_address(t) for t in targets],
            [int(v) for v in values],
            [bytes(HexBytes(c)) for c in calldatas],
            bytes(desc_hash),
        ],
    )
    return int.from_bytes(keccak(encoded), "big")


def units_to_tokens(amount_units: int) -> Decimal:
    """
    Convert integer token units back to a 4-decimal token amount.
    """
    return (Decimal(amount_units) / Decimal(TEN_POW)).quantize(Decimal("0.0001"), rounding=ROUND_DOWN)


def canonical_onchain_id(value) -> str:
    """
    Canonical decimal string of a uint256 proposal id ("007" -> "7").
    Raises ValueError for anything that is not an ASCII decimal in uint256 range.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and DECIMAL_ID_RE.match(value.strip()):
        number = int(value.strip())
    else:
        raise ValueError(f"Not a decimal proposal id: {value!r}")
    if not 0 <= number <= MAX_UINT256:
        raise ValueError("Proposal id out of uint256 range")
    return str(number)
