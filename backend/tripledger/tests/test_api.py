"""
Tests for the HTTP API.
"""
from datetime import timedelta
from decimal import Decimal
from itertools import count
import pytest
from tripledger.core.security import create_access_token

# Ids handed out by the auth provider
provider_ids = count(1000)


def provider_headers(user_id, **claims):
    token = create_access_token({"sub": str(user_id), "user_id": user_id, **claims})
    return {"Authorization": f"Bearer {token}"}


def signup(client, name):
    """Complete a profile as a freshly signed-in caller and return it."""
    user_id = next(provider_ids)
    email = f"{name.lower()}@example.com"
    response = client.post(
        "/api/users",
        json={"name": name, "email": email},
        headers=provider_headers(user_id, email=email)
    )
    assert response.status_code == 201
    assert response.json()["id"] == user_id
    return response.json()


@pytest.fixture
def crew(client, auth_headers):
    """P creates a trip and adds D1 and D2."""
    users = {name: signup(client, name) for name in ("P", "D1", "D2")}
    headers = {name: auth_headers(user["id"]) for name, user in users.items()}

    response = client.post("/api/trips", json={"name": "Goa"}, headers=headers["P"])
    assert response.status_code == 201
    trip = response.json()

    for name in ("D1", "D2"):
        response = client.post(
            f"/api/trips/{trip['id']}/members",
            json={"email": users[name]["email"]},
            headers=headers["P"]
        )
        assert response.status_code == 201

    ids = {name: user["id"] for name, user in users.items()}
    return trip, ids, headers


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_requires_token(client):
    assert client.get("/api/trips").status_code == 401
    response = client.get("/api/trips", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_token_claims(client):
    user = signup(client, "Claims")

    token = create_access_token({"sub": str(user["id"])})
    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.json()["id"] == user["id"]

    expired = create_access_token({"user_id": user["id"]}, expires_delta=timedelta(seconds=-5))
    response = client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401


def test_profile_requires_token(client):
    response = client.post("/api/users", json={"name": "Mallory", "email": "victim@example.com"})

    assert response.status_code == 401
    assert client.post(
        "/api/users",
        json={"name": "Victim", "email": "victim@example.com"},
        headers=provider_headers(77, email="victim@example.com")
    ).status_code == 201


def test_profile_email_must_match_token(client):
    response = client.post(
        "/api/users",
        json={"name": "Mallory", "email": "victim@example.com"},
        headers=provider_headers(66, email="mallory@example.com")
    )

    assert response.status_code == 403
    assert client.get("/api/users/me", headers=provider_headers(66)).status_code == 401


def test_duplicate_profile(client):
    zed = signup(client, "Zed")

    response = client.post(
        "/api/users", json={"name": "Zed", "email": "zed@example.com"}, headers=provider_headers(5)
    )
    assert response.status_code == 409

    response = client.post(
        "/api/users", json={"name": "Zed", "email": "zed2@example.com"}, headers=provider_headers(zed["id"])
    )
    assert response.status_code == 409


def test_me(client, auth_headers):
    user = signup(client, "Me")
    response = client.get("/api/users/me", headers=auth_headers(user["id"]))
    assert response.status_code == 200
    assert response.json()["email"] == "me@example.com"


def test_trip_detail(client, crew):
    trip, ids, headers = crew

    response = client.get(f"/api/trips/{trip['id']}", headers=headers["D1"])

    assert response.status_code == 200
    data = response.json()
    assert data["currency"] == "INR"
    assert data["status"] == "Active"
    assert {m["user_id"] for m in data["members"]} == set(ids.values())
    creator = [m for m in data["members"] if m["is_creator"]]
    assert [m["user_id"] for m in creator] == [ids["P"]]


def test_dispute_flow(client, crew):
    """Create, dispute, remove debtor, then check every balance view."""
    trip, ids, headers = crew
    trip_id = trip["id"]

    response = client.post(
        f"/api/trips/{trip_id}/expenses",
        json={"name": "Dinner", "amount": "300", "debtor_ids": [ids["D1"], ids["D2"]]},
        headers=headers["P"]
    )
    assert response.status_code == 201
    expense = response.json()
    assert expense["payer_id"] == ids["P"]
    assert [Decimal(i["share_amount"]) for i in expense["involvements"]] == [Decimal("100")] * 2
    assert {i["consent_status"] for i in expense["involvements"]} == {"Required"}

    pending = client.get(f"/api/trips/{trip_id}/consents", headers=headers["D1"]).json()
    assert len(pending) == 1
    assert Decimal(pending[0]["share_amount"]) == Decimal("100")
    consent_id = pending[0]["id"]

    response = client.put(
        f"/api/consents/{consent_id}",
        json={"status": "Disputed", "reason": "Not me"},
        headers=headers["D1"]
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Disputed"

    disputes = client.get(f"/api/trips/{trip_id}/disputes", headers=headers["P"]).json()
    assert [d["id"] for d in disputes] == [consent_id]
    assert disputes[0]["debtor_name"] == "D1"

    response = client.post(f"/api/consents/{consent_id}/remove-debtor", headers=headers["D2"])
    assert response.status_code == 403

    response = client.post(f"/api/consents/{consent_id}/remove-debtor", headers=headers["P"])
    assert response.status_code == 200
    involvements = response.json()["involvements"]
    assert [(i["debtor_user_id"], Decimal(i["share_amount"])) for i in involvements] == [
        (ids["D2"], Decimal("150"))
    ]

    balances = client.get(f"/api/trips/{trip_id}/balances", headers=headers["D2"]).json()
    nets = {b["user_id"]: Decimal(b["net_balance"]) for b in balances}
    assert nets == {ids["P"]: Decimal("150"), ids["D1"]: Decimal("0"), ids["D2"]: Decimal("-150")}

    peer = client.get(f"/api/trips/{trip_id}/balances/{ids['D2']}/{ids['P']}", headers=headers["D2"]).json()
    assert Decimal(peer["net_balance"]) == Decimal("-150")

    plan = client.get(f"/api/trips/{trip_id}/settlement-plan", headers=headers["P"]).json()
    assert plan["currency"] == "INR"
    assert [(t["from_user_id"], t["to_user_id"], Decimal(t["amount"])) for t in plan["transfers"]] == [
        (ids["D2"], ids["P"], Decimal("150"))
    ]


def test_reject_dispute_and_dispute_by_expense(client, crew):
    trip, ids, headers = crew
    expense = client.post(
        f"/api/trips/{trip['id']}/expenses",
        json={"name": "Cab", "amount": "90", "debtor_ids": [ids["D1"], ids["D2"]]},
        headers=headers["P"]
    ).json()

    response = client.post(f"/api/expenses/{expense['id']}/dispute", json={"reason": "Walked"}, headers=headers["D2"])
    assert response.status_code == 200
    consent_id = response.json()["id"]

    response = client.post(f"/api/consents/{consent_id}/reject-dispute", headers=headers["P"])
    assert response.status_code == 200
    assert response.json()["status"] == "Required"

    response = client.post(f"/api/consents/{consent_id}/reject-dispute", headers=headers["P"])
    assert response.status_code == 409


def test_validation_errors_are_422(client, crew):
    trip, ids, headers = crew
    url = f"/api/trips/{trip['id']}/expenses"

    response = client.post(url, json={"name": "X", "amount": "10", "debtor_ids": []}, headers=headers["P"])
    assert response.status_code == 422
    assert "error" in response.json()

    response = client.post(url, json={"name": "X", "amount": "10", "debtor_ids": [ids["P"]]}, headers=headers["P"])
    assert response.status_code == 422

    response = client.post(url, json={"name": "X", "amount": "-1", "debtor_ids": [ids["D1"]]}, headers=headers["P"])
    assert response.status_code == 422


def test_outsider_is_forbidden(client, crew, auth_headers):
    trip, ids, headers = crew
    outsider = signup(client, "Outsider")

    response = client.get(f"/api/trips/{trip['id']}/balances", headers=auth_headers(outsider["id"]))

    assert response.status_code == 403


def test_consent_owner_only(client, crew):
    trip, ids, headers = crew
    expense = client.post(
        f"/api/trips/{trip['id']}/expenses",
        json={"name": "Tea", "amount": "30", "debtor_ids": [ids["D1"]]},
        headers=headers["P"]
    ).json()
    consent_id = expense["involvements"][0]["consent_id"]

    response = client.put(f"/api/consents/{consent_id}", json={"status": "Approved"}, headers=headers["D2"])
    assert response.status_code == 403

    response = client.put(f"/api/consents/{consent_id}", json={"status": "Approved"}, headers=headers["D1"])
    assert response.status_code == 200
    response = client.put(f"/api/consents/{consent_id}", json={"status": "Disputed"}, headers=headers["D1"])
    assert response.status_code == 409


def test_leave_trip_gate(client, crew):
    trip, ids, headers = crew
    client.post(
        f"/api/trips/{trip['id']}/expenses",
        json={"name": "Tea", "amount": "30", "debtor_ids": [ids["D1"]]},
        headers=headers["P"]
    )

    url = f"/api/trips/{trip['id']}/members/{ids['D1']}/deactivate"
    response = client.post(url, headers=headers["D1"])
    assert response.status_code == 409
    assert Decimal(response.json()["details"]["balance"]) == Decimal("-15")

    response = client.post(f"/api/trips/{trip['id']}/members/{ids['D2']}/deactivate", headers=headers["D2"])
    assert response.status_code == 200
    assert response.json()["active"] is False

    response = client.post(f"/api/trips/{trip['id']}/members/{ids['D2']}/reactivate", headers=headers["P"])
    assert response.status_code == 200
    assert response.json()["active"] is True


def test_expense_listing_and_delete(client, crew):
    trip, ids, headers = crew
    url = f"/api/trips/{trip['id']}/expenses"
    first = client.post(url, json={"name": "A", "amount": "20", "debtor_ids": [ids["D1"]]}, headers=headers["P"]).json()
    client.post(url, json={"name": "B", "amount": "20", "debtor_ids": [ids["P"]], "payer_id": ids["D2"]}, headers=headers["P"])

    assert len(client.get(url, headers=headers["P"]).json()) == 2
    assert [e["name"] for e in client.get(url, params={"mine": True}, headers=headers["D1"]).json()] == ["A"]

    assert client.delete(f"/api/expenses/{first['id']}", headers=headers["D1"]).status_code == 403
    assert client.delete(f"/api/expenses/{first['id']}", headers=headers["P"]).status_code == 200
    assert client.get(f"/api/expenses/{first['id']}", headers=headers["P"]).status_code == 404
