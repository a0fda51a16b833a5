from conftest import CONTRACT_ADDRESS, OTHER_VOTER, OWNER, VOTER

from voting_gateway.services.blockchain_service import ContractCallError, ContractErrorKind


def add(client, name):
    return client.post("/candidates", json={"name": name})


def test_healthcheck(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "ok"


def test_add_candidate_echoes_name_and_transaction(test_client):
    response = add(test_client, "Alice")
    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert body["data"]["name"] == "Alice"
    assert body["data"]["transactionHash"].startswith("0x")
    assert body["data"]["gasUsed"] == 50_000


def test_add_candidate_rejects_blank_name_without_remote_call(test_client, fake_contract):
    for payload in ({}, {"name": ""}, {"name": "   "}, {"name": 42}):
        response = test_client.post("/candidates", json=payload)
        assert response.status_code == 400
        assert response.get_json() == {
            "success": False,
            "error": "Candidate name is required",
        }
    assert fake_contract.calls == []


def test_add_candidate_remote_failure_is_500(test_client, fake_contract):
    fake_contract.fail(
        "add_candidate", ContractCallError(ContractErrorKind.UNREACHABLE, "connection refused")
    )
    response = add(test_client, "Alice")
    assert response.status_code == 500
    assert response.get_json()["error"] == "connection refused"


def test_added_candidate_is_listed_with_zero_votes(test_client):
    add(test_client, "Alice")
    response = test_client.get("/candidates")
    assert response.status_code == 200
    assert response.get_json()["data"] == {
        "candidates": [{"index": 0, "name": "Alice", "voteCount": 0}],
        "totalCandidates": 1,
    }


def test_list_candidates_remote_failure_is_500(test_client, fake_contract):
    fake_contract.fail("get_candidates", ContractCallError(ContractErrorKind.REMOTE, "boom"))
    response = test_client.get("/candidates")
    assert response.status_code == 500
    assert response.get_json() == {"success": False, "error": "boom"}


def test_vote_then_repeat_vote_is_rejected(test_client):
    add(test_client, "Alice")

    first = test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": 0})
    assert first.status_code == 200
    data = first.get_json()["data"]
    assert data["voter"] == VOTER
    assert data["candidateIndex"] == 0
    assert data["transactionHash"].startswith("0x")

    second = test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": 0})
    assert second.status_code == 400
    assert second.get_json()["error"] == "You have already voted"

    listed = test_client.get("/candidates").get_json()["data"]["candidates"]
    assert listed[0]["voteCount"] == 1


def test_vote_validation_happens_before_remote_calls(test_client, fake_contract):
    cases = [
        ({"candidateIndex": 0}, "Account address is required"),
        ({"accountAddress": VOTER}, "Candidate index is required"),
        ({"accountAddress": "0xnot-an-address", "candidateIndex": 0}, "Invalid account address"),
        (
            {"accountAddress": VOTER, "candidateIndex": -1},
            "Candidate index must be a non-negative integer",
        ),
        (
            {"accountAddress": VOTER, "candidateIndex": True},
            "Candidate index must be a non-negative integer",
        ),
    ]
    for payload, message in cases:
        response = test_client.post("/vote", json=payload)
        assert response.status_code == 400
        assert response.get_json()["error"] == message
    assert fake_contract.calls == []


def test_vote_accepts_numeric_string_index(test_client):
    add(test_client, "Alice")
    response = test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": "0"})
    assert response.status_code == 200
    assert response.get_json()["data"]["candidateIndex"] == 0


def test_vote_for_unknown_candidate_gets_friendly_message(test_client):
    add(test_client, "Alice")
    response = test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": 5})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid candidate index"


def test_vote_already_voted_reported_by_contract(test_client, fake_contract):
    add(test_client, "Alice")
    # checkIfVoted reports false but the transaction itself reverts
    fake_contract.fail(
        "vote",
        ContractCallError(ContractErrorKind.ALREADY_VOTED, "execution reverted: already voted"),
    )
    response = test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": 0})
    assert response.status_code == 400
    assert response.get_json()["error"] == "You have already voted"


def test_vote_other_remote_errors(test_client, fake_contract):
    add(test_client, "Alice")
    fake_contract.fail("vote", ContractCallError(ContractErrorKind.REMOTE, "out of gas"))
    response = test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": 0})
    assert response.status_code == 400
    assert response.get_json()["error"] == "out of gas"

    fake_contract.fail("has_voted", ContractCallError(ContractErrorKind.UNREACHABLE, "timeout"))
    response = test_client.post(
        "/vote", json={"accountAddress": OTHER_VOTER, "candidateIndex": 0}
    )
    assert response.status_code == 500
    assert response.get_json()["error"] == "timeout"


def test_winner_without_candidates_is_404(test_client, fake_contract):
    response = test_client.get("/winner")
    assert response.status_code == 404
    assert response.get_json()["error"] == "No candidates available"
    assert "get_winner" not in fake_contract.calls


def test_winner_returns_leading_candidate(test_client):
    add(test_client, "Alice")
    add(test_client, "Bob")
    test_client.post("/vote", json={"accountAddress": VOTER, "candidateIndex": 1})
    test_client.post("/vote", json={"accountAddress": OTHER_VOTER, "candidateIndex": 1})

    response = test_client.get("/winner")
    assert response.status_code == 200
    assert response.get_json()["data"] == {"winner": {"name": "Bob", "voteCount": 2}}


def test_winner_missing_from_snapshot_falls_back_to_zero(test_client, fake_contract, caplog):
    add(test_client, "Alice")
    fake_contract.winner_override = "Carol"

    response = test_client.get("/winner")
    assert response.status_code == 200
    assert response.get_json()["data"]["winner"] == {"name": "Carol", "voteCount": 0}
    assert "not found in candidate snapshot" in caplog.text


def test_winner_remote_failure_is_500(test_client, fake_contract):
    add(test_client, "Alice")
    fake_contract.fail("get_winner", ContractCallError(ContractErrorKind.REMOTE, "reverted"))
    response = test_client.get("/winner")
    assert response.status_code == 500


def test_accounts_list_balances_and_owner_flag(test_client):
    response = test_client.get("/accounts")
    assert response.status_code == 200
    accounts = response.get_json()["data"]["accounts"]
    assert [account["address"] for account in accounts] == [OWNER, VOTER, OTHER_VOTER]
    assert accounts[0] == {"address": OWNER, "balance": "10000", "isOwner": True}
    assert accounts[1]["balance"] == "9999.5"
    assert accounts[1]["isOwner"] is False
    assert accounts[2]["balance"] == "0.000000000000000001"


def test_accounts_remote_failure_is_500(test_client, fake_contract):
    fake_contract.fail("get_balance", ContractCallError(ContractErrorKind.UNREACHABLE, "down"))
    response = test_client.get("/accounts")
    assert response.status_code == 500
    assert response.get_json()["error"] == "down"


def test_contract_info_is_static(test_client, fake_contract):
    first = test_client.get("/contract-info")
    second = test_client.get("/contract-info")
    assert first.status_code == 200
    assert first.get_json() == second.get_json()
    assert first.get_json()["data"] == {
        "contractAddress": CONTRACT_ADDRESS,
        "ownerAddress": OWNER,
        "network": "localhost",
        "chainId": 1337,
    }
    assert fake_contract.calls == []


def test_unknown_route_is_json_404(test_client):
    response = test_client.get("/elections")
    assert response.status_code == 404
    assert response.get_json() == {"success": False, "error": "Route not found"}


def test_unexpected_error_is_json_500(test_client, fake_contract):
    fake_contract.fail("get_candidates", RuntimeError("unexpected"))
    response = test_client.get("/candidates")
    assert response.status_code == 500
    assert response.get_json() == {"success": False, "error": "unexpected"}


def test_non_object_body_is_rejected_without_remote_call(test_client, fake_contract):
    for path, payload in (("/candidates", ["Alice"]), ("/vote", [1, 2]), ("/vote", "x")):
        response = test_client.post(path, json=payload)
        assert response.status_code == 400
        assert response.get_json() == {
            "success": False,
            "error": "Request body must be a JSON object",
        }
    assert fake_contract.calls == []


def test_missing_body_reports_required_fields(test_client):
    response = test_client.post("/candidates")
    assert response.status_code == 400
    assert response.get_json()["error"] == "Candidate name is required"


def test_factory_configures_logging(gateway_context, monkeypatch):
    import app as app_module

    calls = []
    monkeypatch.setattr(app_module, "configure_logging", lambda: calls.append(True))
    app_module.create_app(gateway_context)
    assert calls == [True]
