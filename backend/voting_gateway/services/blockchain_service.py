from __future__ import annotations

import enum
import logging
import os
from collections.abc import Mapping
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional, Sequence

import requests
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import (
    ProviderConnectionError,
    TimeExhausted,
    Web3Exception,
)
from web3.middleware import ExtraDataToPOAMiddleware

from voting_gateway.models import Candidate, TransactionResult

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_GAS_LIMIT = 200_000
DEFAULT_RECEIPT_TIMEOUT = 120


class ContractErrorKind(enum.Enum):
    ALREADY_VOTED = "already_voted"
    INVALID_CANDIDATE = "invalid_candidate"
    UNREACHABLE = "unreachable"
    REMOTE = "remote"


class ContractCallError(Exception):
    """Raised when a call to the node or the voting contract fails."""

    def __init__(self, kind: ContractErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


_UNREACHABLE_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    ProviderConnectionError,
    TimeExhausted,
)
_REMOTE_ERRORS = _UNREACHABLE_ERRORS + (Web3Exception, requests.exceptions.RequestException)


def classify_error(exc: BaseException) -> ContractErrorKind:
    if isinstance(exc, _UNREACHABLE_ERRORS):
        return ContractErrorKind.UNREACHABLE
    message = str(exc).lower()
    if "already voted" in message:
        return ContractErrorKind.ALREADY_VOTED
    if "invalid candidate" in message:
        return ContractErrorKind.INVALID_CANDIDATE
    return ContractErrorKind.REMOTE


@contextmanager
def remote_call(description: str) -> Generator:
    """Translate web3 and transport failures into ContractCallError."""
    try:
        yield
    except _REMOTE_ERRORS as exc:
        kind = classify_error(exc)
        logger.debug("%s failed (%s): %s", description, kind.value, exc)
        raise ContractCallError(kind, str(exc)) from exc


def connect_web3(rpc_url: Optional[str] = None) -> Web3:
    rpc_url = rpc_url or os.getenv("RPC_URL", DEFAULT_RPC_URL)
    web3 = Web3(Web3.HTTPProvider(rpc_url))
    if os.getenv("POA_CHAIN", "false").lower() in ("1", "true", "yes"):
        # Goerli/Sepolia-style chains carry extra data in block headers
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return web3


class VotingContract:
    """Thin client over the deployed Voting contract."""

    def __init__(
        self,
        web3: Web3,
        contract: Contract,
        gas_limit: Optional[int] = None,
        receipt_timeout: Optional[float] = None,
        private_key: Optional[str] = None,
    ) -> None:
        self.web3 = web3
        self.contract = contract
        self.gas_limit = gas_limit or int(os.getenv("GAS_LIMIT", DEFAULT_GAS_LIMIT))
        self.receipt_timeout = receipt_timeout or float(
            os.getenv("RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT)
        )
        self.private_key = private_key

    @classmethod
    def bind(cls, web3: Web3, address: str, abi: Sequence[Dict[str, Any]], **kwargs) -> "VotingContract":
        contract = web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)
        return cls(web3, contract, **kwargs)

    @property
    def address(self) -> str:
        return self.contract.address

    def add_candidate(self, name: str, sender: str) -> TransactionResult:
        return self._transact("addCandidate", name, sender=sender, private_key=self.private_key)

    def get_candidates(self) -> List[Candidate]:
        with remote_call("getCandidates"):
            raw_candidates = self.contract.functions.getCandidates().call()
        return [_to_candidate(index, entry) for index, entry in enumerate(raw_candidates)]

    def has_voted(self, address: str) -> bool:
        with remote_call("checkIfVoted"):
            return bool(
                self.contract.functions.checkIfVoted(Web3.to_checksum_address(address)).call()
            )

    def vote(self, candidate_index: int, sender: str) -> TransactionResult:
        return self._transact("vote", candidate_index, sender=sender)

    def get_winner(self) -> str:
        with remote_call("getWinner"):
            return self.contract.functions.getWinner().call()

    def list_accounts(self) -> List[str]:
        with remote_call("eth_accounts"):
            return list(self.web3.eth.accounts)

    def get_balance(self, address: str) -> Decimal:
        with remote_call("eth_getBalance"):
            balance = self.web3.eth.get_balance(address)
        return Decimal(Web3.from_wei(balance, "ether"))

    def chain_id(self) -> int:
        with remote_call("eth_chainId"):
            return int(self.web3.eth.chain_id)

    def _transact(
        self, function_name: str, *args, sender: str, private_key: Optional[str] = None
    ) -> TransactionResult:
        sender = Web3.to_checksum_address(sender)
        with remote_call(function_name):
            function = getattr(self.contract.functions, function_name)(*args)
            if private_key:
                transaction = function.build_transaction(
                    {
                        "from": sender,
                        "nonce": self.web3.eth.get_transaction_count(sender),
                        "gas": self.gas_limit,
                        "gasPrice": self.web3.eth.gas_price,
                    }
                )
                signed_tx = self.web3.eth.account.sign_transaction(
                    transaction, private_key=private_key
                )
                tx_hash = self.web3.eth.send_raw_transaction(signed_tx.raw_transaction)
            else:
                tx_hash = function.transact({"from": sender, "gas": self.gas_limit})
            receipt = self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )

        tx_hex = Web3.to_hex(receipt["transactionHash"])
        if receipt.get("status", 1) == 0:
            raise ContractCallError(
                ContractErrorKind.REMOTE, f"Transaction {tx_hex} was reverted"
            )
        return TransactionResult(tx_hash=tx_hex, gas_used=int(receipt["gasUsed"]))


def _to_candidate(index: int, entry: Any) -> Candidate:
    if isinstance(entry, Mapping):
        name, vote_count = entry["name"], entry["voteCount"]
    else:
        name, vote_count = entry[0], entry[1]
    return Candidate(index=index, name=name, vote_count=int(vote_count))
