from __future__ import annotations

import logging
from typing import Any, Dict, List

from web3 import Web3

from voting_gateway.models import AccountBalance
from voting_gateway.services.blockchain_service import ContractCallError, ContractErrorKind
from voting_gateway.services.gateway_context import GatewayContext

logger = logging.getLogger(__name__)

ALREADY_VOTED_MESSAGE = "You have already voted"
INVALID_CANDIDATE_MESSAGE = "Invalid candidate index"


class GatewayError(Exception):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def json_object(payload: Any) -> Dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise GatewayError("Request body must be a JSON object", 400)
    return payload


def add_candidate(context: GatewayContext, name: Any) -> Dict:
    if not isinstance(name, str) or not name.strip():
        raise GatewayError("Candidate name is required", 400)

    try:
        result = context.contract.add_candidate(name, sender=context.owner)
    except ContractCallError as exc:
        logger.error("Error adding candidate: %s", exc.message)
        raise GatewayError(exc.message, 500) from exc

    logger.info("Candidate added: %s", name)
    return {"name": name, **result.to_dict()}


def list_candidates(context: GatewayContext) -> Dict:
    try:
        candidates = context.contract.get_candidates()
    except ContractCallError as exc:
        logger.error("Error fetching candidates: %s", exc.message)
        raise GatewayError(exc.message, 500) from exc

    return {
        "candidates": [candidate.to_dict() for candidate in candidates],
        "totalCandidates": len(candidates),
    }


def cast_vote(context: GatewayContext, account_address: Any, candidate_index: Any) -> Dict:
    if not account_address:
        raise GatewayError("Account address is required", 400)
    if candidate_index is None:
        raise GatewayError("Candidate index is required", 400)
    if not isinstance(account_address, str) or not Web3.is_address(account_address):
        raise GatewayError("Invalid account address", 400)
    index = _parse_candidate_index(candidate_index)

    try:
        if context.contract.has_voted(account_address):
            raise GatewayError(ALREADY_VOTED_MESSAGE, 400)
        result = context.contract.vote(index, sender=account_address)
    except ContractCallError as exc:
        logger.error("Error casting vote: %s", exc.message)
        raise _vote_error(exc) from exc

    logger.info("Vote cast by %s for candidate %s", account_address, index)
    return {"voter": account_address, "candidateIndex": index, **result.to_dict()}


def get_winner(context: GatewayContext) -> Dict:
    try:
        candidates = context.contract.get_candidates()
        if not candidates:
            raise GatewayError("No candidates available", 404)
        winner = context.contract.get_winner()
    except ContractCallError as exc:
        logger.error("Error getting winner: %s", exc.message)
        raise GatewayError(exc.message, 500) from exc

    details = next((candidate for candidate in candidates if candidate.name == winner), None)
    if details is None:
        # getCandidates and getWinner are separate reads; a candidate added
        # in between leaves the winner missing from the earlier snapshot.
        logger.warning(
            "Winner %r not found in candidate snapshot; reads raced, reporting 0 votes",
            winner,
        )
    return {
        "winner": {
            "name": winner,
            "voteCount": details.vote_count if details else 0,
        }
    }


def list_accounts(context: GatewayContext) -> Dict:
    accounts: List[Dict] = []
    try:
        for address in context.accounts:
            balance = context.contract.get_balance(address)
            accounts.append(
                AccountBalance(
                    address=address, balance=balance, is_owner=context.is_owner(address)
                ).to_dict()
            )
    except ContractCallError as exc:
        logger.error("Error fetching accounts: %s", exc.message)
        raise GatewayError(exc.message, 500) from exc

    return {"accounts": accounts}


def contract_info(context: GatewayContext) -> Dict:
    return {
        "contractAddress": context.contract_address,
        "ownerAddress": context.owner,
        "network": context.network,
        "chainId": context.chain_id,
    }


def _parse_candidate_index(candidate_index: Any) -> int:
    if isinstance(candidate_index, bool):
        raise GatewayError("Candidate index must be a non-negative integer", 400)
    if isinstance(candidate_index, str) and candidate_index.strip().isdigit():
        return int(candidate_index.strip())
    if isinstance(candidate_index, int) and candidate_index >= 0:
        return candidate_index
    raise GatewayError("Candidate index must be a non-negative integer", 400)


def _vote_error(exc: ContractCallError) -> GatewayError:
    if exc.kind is ContractErrorKind.ALREADY_VOTED:
        return GatewayError(ALREADY_VOTED_MESSAGE, 400)
    if exc.kind is ContractErrorKind.INVALID_CANDIDATE:
        return GatewayError(INVALID_CANDIDATE_MESSAGE, 400)
    if exc.kind is ContractErrorKind.UNREACHABLE:
        return GatewayError(exc.message, 500)
    return GatewayError(exc.message, 400)
