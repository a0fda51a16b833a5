from __future__ import annotations

from flask import Blueprint, jsonify, request

from voting_gateway.services.gateway_context import get_context
from voting_gateway.services.voting_service import (
    GatewayError,
    add_candidate,
    get_winner,
    json_object,
    list_candidates,
)

candidate_bp = Blueprint("candidates", __name__)


@candidate_bp.post("/candidates")
def create_candidate():
    try:
        payload = json_object(request.get_json(silent=True))
        candidate = add_candidate(get_context(), payload.get("name"))
    except GatewayError as exc:
        return jsonify({"success": False, "error": exc.message}), exc.status_code

    return (
        jsonify(
            {
                "success": True,
                "message": "Candidate added successfully",
                "data": candidate,
            }
        ),
        201,
    )


@candidate_bp.get("/candidates")
def get_all_candidates():
    try:
        candidates = list_candidates(get_context())
    except GatewayError as exc:
        return jsonify({"success": False, "error": exc.message}), exc.status_code
    return jsonify({"success": True, "data": candidates}), 200


@candidate_bp.get("/winner")
def winner():
    try:
        result = get_winner(get_context())
    except GatewayError as exc:
        return jsonify({"success": False, "error": exc.message}), exc.status_code
    return jsonify({"success": True, "data": result}), 200
