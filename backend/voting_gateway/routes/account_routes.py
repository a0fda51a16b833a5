from __future__ import annotations

from flask import Blueprint, jsonify

from voting_gateway.services.gateway_context import get_context
from voting_gateway.services.voting_service import (
    GatewayError,
    contract_info,
    list_accounts,
)

account_bp = Blueprint("accounts", __name__)


@account_bp.get("/accounts")
def get_accounts():
    try:
        accounts = list_accounts(get_context())
    except GatewayError as exc:
        return jsonify({"success": False, "error": exc.message}), exc.status_code
    return jsonify({"success": True, "data": accounts}), 200


@account_bp.get("/contract-info")
def get_contract_info():
    return jsonify({"success": True, "data": contract_info(get_context())}), 200
