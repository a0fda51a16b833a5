"""Publish the Voting contract and record its address, owner and ABI."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv
from eth_account import Account
from solcx import compile_standard, install_solc
from solcx.exceptions import SolcError
from web3 import Web3

from voting_gateway.models import DeploymentArtifact
from voting_gateway.services.blockchain_service import (
    DEFAULT_RECEIPT_TIMEOUT,
    ContractCallError,
    connect_web3,
    remote_call,
)
from voting_gateway.services.gateway_context import deployment_file_path

logger = logging.getLogger(__name__)

CONTRACT_VERSION = os.getenv("SOLC_VERSION", "0.8.20")
DEPLOY_GAS = 3_000_000


class DeploymentError(Exception):
    """Raised when the contract cannot be compiled or published."""


def compile_contract(source_path: Path, solc_version: str = CONTRACT_VERSION) -> Dict:
    cache_path = source_path.with_suffix(".json")
    if cache_path.exists() and cache_path.stat().st_mtime >= source_path.stat().st_mtime:
        return json.loads(cache_path.read_text(encoding="utf-8"))

    install_solc(solc_version)
    source = source_path.read_text(encoding="utf-8")
    compiled_sol = compile_standard(
        {
            "language": "Solidity",
            "sources": {source_path.name: {"content": source}},
            "settings": {
                "outputSelection": {"*": {"*": ["abi", "metadata", "evm.bytecode"]}}
            },
        },
        solc_version=solc_version,
    )

    contract_interface = compiled_sol["contracts"][source_path.name][source_path.stem]
    cache_path.write_text(json.dumps(contract_interface, indent=2), encoding="utf-8")
    return contract_interface


def read_abi_and_bytecode(contract_interface: Dict) -> Tuple[list, str]:
    """Accept both raw solc output and Hardhat artifacts."""
    abi = contract_interface.get("abi")
    bytecode = contract_interface.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if not bytecode:
        bytecode = contract_interface.get("evm", {}).get("bytecode", {}).get("object")
    if not abi or not bytecode:
        raise DeploymentError("Compiled contract must provide an ABI and bytecode")
    return abi, bytecode


def load_contract_interface(artifact: Optional[Path], source: Optional[Path]) -> Dict:
    if artifact is not None:
        return json.loads(artifact.read_text(encoding="utf-8"))
    if source is not None:
        return compile_contract(source)
    raise DeploymentError("Either --artifact or --source must be provided")


def deploy_contract(
    web3: Web3,
    abi: list,
    bytecode: str,
    private_key: Optional[str] = None,
    timeout: float = DEFAULT_RECEIPT_TIMEOUT,
) -> DeploymentArtifact:
    contract = web3.eth.contract(abi=abi, bytecode=bytecode)

    with remote_call("deploy"):
        if private_key:
            owner = Account.from_key(private_key).address
            transaction = contract.constructor().build_transaction(
                {
                    "from": owner,
                    "nonce": web3.eth.get_transaction_count(owner),
                    "gas": DEPLOY_GAS,
                    "gasPrice": web3.eth.gas_price,
                }
            )
            signed_tx = web3.eth.account.sign_transaction(transaction, private_key=private_key)
            tx_hash = web3.eth.send_raw_transaction(signed_tx.raw_transaction)
        else:
            accounts = web3.eth.accounts
            if not accounts:
                raise DeploymentError("Node exposes no unlocked accounts; set PRIVATE_KEY")
            owner = accounts[0]
            tx_hash = contract.constructor().transact({"from": owner})

        logger.info("Deployment transaction hash: %s", web3.to_hex(tx_hash))
        receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)

    if receipt.get("status", 1) == 0 or not receipt.get("contractAddress"):
        raise DeploymentError(f"Deployment transaction {web3.to_hex(tx_hash)} failed")

    return DeploymentArtifact(address=receipt["contractAddress"], owner=owner, abi=abi)


def write_artifact(artifact: DeploymentArtifact, output: Path) -> Path:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(artifact.to_dict(), indent=2), encoding="utf-8")
    return output


def parse_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy the Voting smart contract.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--artifact", type=Path, help="Compiled contract JSON (abi + bytecode)")
    group.add_argument("--source", type=Path, help="Solidity source to compile with solc")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to write the deployment file (default: DEPLOYMENT_FILE)",
    )
    parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint of the node")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    args = parse_arguments(argv)
    output = args.output or deployment_file_path()

    try:
        logger.info("Deploying Voting contract...")
        abi, bytecode = read_abi_and_bytecode(load_contract_interface(args.artifact, args.source))
        artifact = deploy_contract(
            connect_web3(args.rpc_url),
            abi,
            bytecode,
            private_key=os.getenv("PRIVATE_KEY") or None,
            timeout=float(os.getenv("RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT)),
        )
        write_artifact(artifact, output)
    except (DeploymentError, ContractCallError, SolcError, OSError, ValueError, KeyError) as exc:
        logger.error("Deployment failed: %s", exc)
        return 1

    logger.info("Voting contract deployed to: %s", artifact.address)
    logger.info("Contract owner: %s", artifact.owner)
    logger.info("Contract data saved to: %s", output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
