from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List


@dataclass(frozen=True)
class DeploymentArtifact:
    address: str
    owner: str
    abi: List[Dict[str, Any]]

    def to_dict(self) -> Dict:
        return {"address": self.address, "owner": self.owner, "abi": self.abi}


@dataclass(frozen=True)
class Candidate:
    index: int
    name: str
    vote_count: int

    def to_dict(self) -> Dict:
        return {"index": self.index, "name": self.name, "voteCount": self.vote_count}


@dataclass(frozen=True)
class TransactionResult:
    tx_hash: str
    gas_used: int

    def to_dict(self) -> Dict:
        return {"transactionHash": self.tx_hash, "gasUsed": self.gas_used}


@dataclass(frozen=True)
class AccountBalance:
    address: str
    balance: Decimal
    is_owner: bool

    def to_dict(self) -> Dict:
        return {
            "address": self.address,
            "balance": format(self.balance, "f"),
            "isOwner": self.is_owner,
        }
