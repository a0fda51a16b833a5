from decimal import Decimal

import pytest

from voting_gateway.models import Candidate, TransactionResult
from voting_gateway.services.blockchain_service import ContractCallError, ContractErrorKind
from voting_gateway.services.gateway_context import GatewayContext

OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
VOTER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER_VOTER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class FakeVotingContract:
    """In-memory stand-in for the deployed Voting contract."""

    def __init__(self):
        self.candidates = []
        self.voters = set()
        self.calls = []
        self.failures = {}
        self.winner_override = None
        self._tx_counter = 0

    def fail(self, method, error):
        self.failures[method] = error

    def _record(self, method):
        self.calls.append(method)
        error = self.failures.get(method)
        if error is not None:
            raise error

    def _receipt(self):
        self._tx_counter += 1
        return TransactionResult(tx_hash=f"0x{self._tx_counter:064x}", gas_used=50_000)

    def add_candidate(self, name, sender):
        self._record("add_candidate")
        if sender != OWNER:
            raise ContractCallError(ContractErrorKind.REMOTE, "Only owner can add candidates")
        self.candidates.append([name, 0])
        return self._receipt()

    def get_candidates(self):
        self._record("get_candidates")
        return [
            Candidate(index=index, name=name, vote_count=votes)
            for index, (name, votes) in enumerate(self.candidates)
        ]

    def has_voted(self, address):
        self._record("has_voted")
        return address.lower() in self.voters

    def vote(self, candidate_index, sender):
        self._record("vote")
        if sender.lower() in self.voters:
            raise ContractCallError(
                ContractErrorKind.ALREADY_VOTED, "execution reverted: You have already voted."
            )
        if candidate_index >= len(self.candidates):
            raise ContractCallError(
                ContractErrorKind.INVALID_CANDIDATE, "execution reverted: Invalid candidate."
            )
        self.voters.add(sender.lower())
        self.candidates[candidate_index][1] += 1
        return self._receipt()

    def get_winner(self):
        self._record("get_winner")
        if self.winner_override is not None:
            return self.winner_override
        return max(self.candidates, key=lambda candidate: candidate[1])[0]

    def get_balance(self, address):
        self._record("get_balance")
        if address == OWNER:
            return Decimal("10000")
        if address == VOTER:
            return Decimal("9999.5")
        return Decimal("1E-18")


@pytest.fixture
def fake_contract():
    return FakeVotingContract()


@pytest.fixture
def gateway_context(fake_contract):
    return GatewayContext(
        contract=fake_contract,
        owner=OWNER,
        accounts=(OWNER, VOTER, OTHER_VOTER),
        contract_address=CONTRACT_ADDRESS,
        network="localhost",
        chain_id=1337,
    )


@pytest.fixture
def test_client(gateway_context):
    from app import create_app

    app = create_app(gateway_context)
    return app.test_client()
