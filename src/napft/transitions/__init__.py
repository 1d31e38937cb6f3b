"""Ownership/listing/transaction consistency protocol."""

from napft.transitions.engine import TransitionEngine, generate_tx_hash
from napft.transitions.types import MintDetails, TransitionKind, TransitionParams

__all__ = ["MintDetails", "TransitionEngine", "TransitionKind", "TransitionParams", "generate_tx_hash"]
