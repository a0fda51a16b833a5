import argparse
import os
import sys

from dotenv import load_dotenv
from web3 import Web3

from voting_gateway.services.blockchain_service import (
    ContractCallError,
    VotingContract,
    connect_web3,
)
from voting_gateway.services.gateway_context import (
    DeploymentArtifactError,
    load_deployment_artifact,
)


def get_contract(deployment_file=None, rpc_url=None):
    artifact = load_deployment_artifact(deployment_file)
    contract = VotingContract.bind(
        connect_web3(rpc_url),
        artifact.address,
        artifact.abi,
        private_key=os.getenv("PRIVATE_KEY") or None,
    )
    return contract, artifact.owner


def add_candidate(contract, owner, name):
    result = contract.add_candidate(name, sender=owner)
    print("Candidate added with tx:", result.tx_hash)
    print("Gas used:", result.gas_used)


def cast_vote(contract, account, candidate_index):
    if not Web3.is_address(account):
        raise ValueError(f"Invalid account address: {account}")
    if contract.has_voted(account):
        print(f"{account} has already voted")
        return
    result = contract.vote(candidate_index, sender=account)
    print("Vote submitted:", result.tx_hash)
    print("Gas used:", result.gas_used)


def show_candidates(contract):
    candidates = contract.get_candidates()
    if not candidates:
        print("No candidates registered.")
    for candidate in candidates:
        print(f"[{candidate.index}] {candidate.name}: {candidate.vote_count}")


def show_winner(contract):
    if not contract.get_candidates():
        print("No candidates registered.")
        return
    print("Winner:", contract.get_winner())


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Interact with the Voting smart contract.")
    parser.add_argument("--deployment", help="Deployment file (default: DEPLOYMENT_FILE)")
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint of the node")
    subparsers = parser.add_subparsers(dest="command")

    add_parser = subparsers.add_parser("add", help="Add a candidate as the contract owner")
    add_parser.add_argument("--name", required=True)

    vote_parser = subparsers.add_parser("vote", help="Cast a vote")
    vote_parser.add_argument("--account", required=True)
    vote_parser.add_argument("--candidate", type=int, required=True)

    subparsers.add_parser("candidates", help="List candidates and their votes")
    subparsers.add_parser("winner", help="Show the current winner")

    return parser.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_arguments(argv)
    if args.command is None:
        print("No command provided. Use --help for instructions.")
        return 1

    try:
        contract, owner = get_contract(args.deployment, args.rpc_url)
        if args.command == "add":
            add_candidate(contract, owner, args.name)
        elif args.command == "vote":
            cast_vote(contract, args.account, args.candidate)
        elif args.command == "candidates":
            show_candidates(contract)
        elif args.command == "winner":
            show_winner(contract)
    except (DeploymentArtifactError, ContractCallError, ValueError) as exc:
        print("Error:", exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
