from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from flask import current_app
from web3 import Web3

from voting_gateway.models import DeploymentArtifact
from voting_gateway.services.blockchain_service import VotingContract

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DEPLOYMENT_FILE = BASE_DIR / "deployment" / "Voting.json"
CONTEXT_EXTENSION = "voting_gateway"


class DeploymentArtifactError(Exception):
    """Raised when the deployment artifact is missing or malformed."""


@dataclass(frozen=True)
class GatewayContext:
    contract: VotingContract
    owner: str
    accounts: Tuple[str, ...]
    contract_address: str
    network: str
    chain_id: int

    def is_owner(self, address: str) -> bool:
        return address.lower() == self.owner.lower()


def deployment_file_path() -> Path:
    return Path(os.getenv("DEPLOYMENT_FILE", str(DEFAULT_DEPLOYMENT_FILE)))


def load_deployment_artifact(path: Optional[Union[str, Path]] = None) -> DeploymentArtifact:
    path = Path(path) if path else deployment_file_path()
    if not path.exists():
        raise DeploymentArtifactError(
            f"Contract deployment file not found at {path}. Please deploy the contract first."
        )
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise DeploymentArtifactError(f"Unable to read deployment file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise DeploymentArtifactError(f"Deployment file {path} must contain a JSON object")
    missing = [field for field in ("address", "owner", "abi") if not data.get(field)]
    if missing:
        raise DeploymentArtifactError(
            f"Deployment file {path} is missing fields: {', '.join(missing)}"
        )

    abi = data["abi"]
    # ethers' Interface.format("json") emits the ABI as a JSON string
    if isinstance(abi, str):
        try:
            abi = json.loads(abi)
        except ValueError as exc:
            raise DeploymentArtifactError(f"Invalid ABI in {path}: {exc}") from exc
    if not isinstance(abi, list):
        raise DeploymentArtifactError(f"ABI in {path} must be a list")

    return DeploymentArtifact(address=data["address"], owner=data["owner"], abi=abi)


def build_context(
    artifact: DeploymentArtifact,
    web3: Web3,
    network: Optional[str] = None,
    private_key: Optional[str] = None,
) -> GatewayContext:
    """Bind the contract and snapshot the node state handlers rely on."""
    contract = VotingContract.bind(
        web3, artifact.address, artifact.abi, private_key=private_key
    )
    accounts = tuple(contract.list_accounts())
    chain_id_env = os.getenv("CHAIN_ID", "")
    chain_id = int(chain_id_env) if chain_id_env.isdigit() else contract.chain_id()

    context = GatewayContext(
        contract=contract,
        owner=artifact.owner,
        accounts=accounts,
        contract_address=contract.address,
        network=network or os.getenv("NETWORK_NAME", "localhost"),
        chain_id=chain_id,
    )
    logger.info("Contract initialized at %s", context.contract_address)
    logger.info("Owner account: %s", context.owner)
    logger.info("Available accounts: %s", len(context.accounts))
    return context


def get_context() -> GatewayContext:
    return current_app.extensions[CONTEXT_EXTENSION]
