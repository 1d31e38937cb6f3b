"""Transition kinds and request parameters."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class TransitionKind(str, enum.Enum):
    """State-changing operations on an NFT.

    ``SELL`` is a buy recorded from the seller's side; it follows the same
    rules as ``BUY``.
    """

    MINT = "mint"
    LIST = "list"
    UNLIST = "unlist"
    BUY = "buy"
    SELL = "sell"
    TRANSFER = "transfer"


@dataclass
class MintDetails:
    creator: str
    title: str
    ipfs_hash: str
    description: str | None = None
    price: float = 0.0
    currency: str | None = None
    royalty_fee: float = 0.0
    is_listed: bool = False
    category: str = "Art"
    rarity: str = "Common"
    token_standard: str = "ERC-721"
    utility_percent: float = 0.0
    collection_id: int | None = None
    attributes: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class TransitionParams:
    """Inputs for one transition. Which fields apply depends on the kind.

    ``trusted`` marks internal collaborators (the chain importer) whose
    requests skip the caller authorization check.
    """

    caller: str | None = None
    price: float | None = None
    currency: str | None = None
    buyer: str | None = None
    to: str | None = None
    expected_seller: str | None = None
    expected_price: float | None = None
    tx_hash: str | None = None
    trusted: bool = False
    mint: MintDetails | None = None
