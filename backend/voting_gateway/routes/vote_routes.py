from __future__ import annotations

from flask import Blueprint, jsonify, request

from voting_gateway.services.gateway_context import get_context
from voting_gateway.services.voting_service import GatewayError, cast_vote, json_object

vote_bp = Blueprint("votes", __name__)


@vote_bp.post("/vote")
def submit_vote():
    try:
        payload = json_object(request.get_json(silent=True))
        vote = cast_vote(
            get_context(),
            payload.get("accountAddress"),
            payload.get("candidateIndex"),
        )
    except GatewayError as exc:
        return jsonify({"success": False, "error": exc.message}), exc.status_code

    return (
        jsonify({"success": True, "message": "Vote cast successfully", "data": vote}),
        200,
    )
