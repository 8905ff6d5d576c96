"""
Plan procedures over HTTP.

Covers the four procedures, their access tiers, and the failure codes each
one surfaces to callers.
"""
import pytest

from planhub.core.tokens import issue_access_token


def create(client, headers, name, price):
    return client.post("/trpc/plans.create", json={"name": name, "price": price}, headers=headers)


# ---------------------------------------------------------------------------
# find
# ---------------------------------------------------------------------------

def test_find_returns_plan(client, seed):
    seed.plan("fakeId", "fakeName", 15)
    resp = client.get("/trpc/plans.find", params={"planId": "fakeId"})
    assert resp.status_code == 200
    assert resp.json() == {"id": "fakeId", "name": "fakeName", "price": 15}


@pytest.mark.parametrize("params", [{"planId": "fakeNotFoundId"}, {"planId": ""}, {}])
def test_find_missing_or_unknown_is_not_found(client, seed, params):
    seed.plan("fakeId", "fakeName", 15)
    resp = client.get("/trpc/plans.find", params=params)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


def test_find_is_public_even_with_bad_credentials(client, seed):
    seed.plan("fakeId", "fakeName", 15)
    resp = client.get("/trpc/plans.find", params={"planId": "fakeId"}, headers={"Authorization": "Bearer junk"})
    assert resp.status_code == 200


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------

def test_admin_creates_plan_then_find_returns_it(client, admin_headers):
    resp = create(client, admin_headers, "N", 30.5)
    assert resp.status_code == 200
    created = resp.json()
    assert created["name"] == "N"
    assert created["price"] == 30.5
    assert created["id"]

    found = client.get("/trpc/plans.find", params={"planId": created["id"]})
    assert found.json() == created


def test_created_ids_are_fresh(client, admin_headers, seed):
    seed.plan("existing", "Existing", 10)
    first = create(client, admin_headers, "A", 1).json()
    second = create(client, admin_headers, "B", 2).json()
    assert len({first["id"], second["id"], "existing"}) == 3


def test_duplicate_name_is_bad_request_and_store_unchanged(client, admin_headers, seed):
    seed.plan("basic", "Basic", 30)
    resp = create(client, admin_headers, "Basic", 99)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"]["code"] == "bad_request"
    assert body["error"]["message"] == "Plan with the same name already exists"

    still = client.get("/trpc/plans.find", params={"planId": "basic"}).json()
    assert still == {"id": "basic", "name": "Basic", "price": 30}


def test_create_without_credentials_is_unauthorized(client):
    resp = create(client, {}, "N", 10)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_create_by_non_admin_is_unauthorized(client, user_headers):
    resp = create(client, user_headers, "N", 10)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_create_by_unknown_user_is_unauthorized(client):
    headers = {"Authorization": f"Bearer {issue_access_token('ghost')}"}
    resp = create(client, headers, "N", 10)
    assert resp.status_code == 401


def test_admin_failures_share_one_message(client, user_headers):
    ghost = {"Authorization": f"Bearer {issue_access_token('ghost')}"}
    expired = {"Authorization": f"Bearer {issue_access_token('admin-1', exp_minutes=-1)}"}
    messages = {
        create(client, headers, "N", 10).json()["error"]["message"]
        for headers in ({}, user_headers, ghost, expired)
    }
    assert messages == {"Unauthorized"}


def test_unauthorized_wins_over_invalid_input(client, seed):
    seed.plan("basic", "Basic", 30)
    # Duplicate name and wrong types would both be input failures for an admin
    assert create(client, {}, "Basic", 10).status_code == 401
    assert client.post("/trpc/plans.create", json={"name": 1}).status_code == 401
    assert client.post("/trpc/plans.update", json={"id": "missing"}).status_code == 401


def test_create_rejects_malformed_input_for_admin(client, admin_headers):
    resp = client.post("/trpc/plans.create", json={"name": "N"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "bad_request"


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

def test_update_name_and_price(client, admin_headers):
    created = create(client, admin_headers, "fakePlanName2", 30.5).json()
    resp = client.post(
        "/trpc/plans.update",
        json={"id": created["id"], "name": "new name", "price": 100},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"id": created["id"], "name": "new name", "price": 100}


def test_update_price_only_preserves_name(client, admin_headers, seed):
    seed.plan("x", "X", 30)
    resp = client.post("/trpc/plans.update", json={"id": "x", "price": 100}, headers=admin_headers)
    assert resp.json() == {"id": "x", "name": "X", "price": 100}


def test_update_falsy_values_leave_record_unchanged(client, admin_headers, seed):
    seed.plan("x", "X", 30)
    resp = client.post("/trpc/plans.update", json={"id": "x", "name": "", "price": 0}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"id": "x", "name": "X", "price": 30}


def test_update_unknown_plan_is_bad_request(client, admin_headers):
    resp = client.post("/trpc/plans.update", json={"id": "missing", "price": 5}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "No plan to update"


def test_update_by_non_admin_is_unauthorized(client, user_headers, seed):
    seed.plan("x", "X", 30)
    resp = client.post("/trpc/plans.update", json={"id": "x", "price": 1}, headers=user_headers)
    assert resp.status_code == 401
    assert client.get("/trpc/plans.find", params={"planId": "x"}).json()["price"] == 30


# ---------------------------------------------------------------------------
# checkUpgradePrice
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("days_remaining,expected", [(15, 45), (30, 60), (0, 30)])
def test_check_upgrade_price(client, seed, days_remaining, expected):
    seed.plan("old", "oldPlan", 30)
    seed.plan("new", "newPlan", 60)
    resp = client.get(
        "/trpc/plans.checkUpgradePrice",
        params={"currentPlanId": "old", "newPlanId": "new", "daysRemaining": days_remaining},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["amount"] == pytest.approx(expected)
    assert body["message"] == f"You will need to pay {expected} to upgrade"


def test_check_upgrade_price_with_created_plans(client, admin_headers):
    old = create(client, admin_headers, "oldPlan", 30).json()
    new = create(client, admin_headers, "newPlan", 60).json()
    resp = client.get(
        "/trpc/plans.checkUpgradePrice",
        params={"currentPlanId": old["id"], "newPlanId": new["id"], "daysRemaining": 15},
    )
    assert resp.json()["amount"] == 45


@pytest.mark.parametrize("current,new", [("missing", "new"), ("old", "missing")])
def test_check_upgrade_price_unknown_plan(client, seed, current, new):
    seed.plan("old", "oldPlan", 30)
    seed.plan("new", "newPlan", 60)
    resp = client.get(
        "/trpc/plans.checkUpgradePrice",
        params={"currentPlanId": current, "newPlanId": new, "daysRemaining": 15},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Invalid params"


def test_check_upgrade_price_out_of_range_days_not_validated(client, seed):
    seed.plan("old", "oldPlan", 30)
    seed.plan("new", "newPlan", 60)
    resp = client.get(
        "/trpc/plans.checkUpgradePrice",
        params={"currentPlanId": "old", "newPlanId": "new", "daysRemaining": 45},
    )
    assert resp.status_code == 200
    assert resp.json()["amount"] == pytest.approx(75)


# ---------------------------------------------------------------------------
# Body decoding and non-finite numbers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("route", ["/trpc/plans.create", "/trpc/plans.update"])
@pytest.mark.parametrize("content", [b"{not json", b"", b"[1, 2"])
def test_undecodable_body_without_credentials_is_unauthorized(client, route, content):
    resp = client.post(route, content=content, headers={"Content-Type": "application/json"})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_undecodable_body_from_non_admin_is_unauthorized(client, user_headers):
    headers = {**user_headers, "Content-Type": "application/json"}
    resp = client.post("/trpc/plans.create", content=b"{not json", headers=headers)
    assert resp.status_code == 401


def test_undecodable_body_from_admin_is_bad_request(client, admin_headers):
    headers = {**admin_headers, "Content-Type": "application/json"}
    resp = client.post("/trpc/plans.create", content=b"{not json", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == {
        "code": "bad_request",
        "message": "Malformed JSON body",
        "request_id": resp.headers["x-request-id"],
    }


def test_invalid_field_message_names_the_field(client, admin_headers):
    resp = client.post("/trpc/plans.create", json={"name": "N", "price": -1}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"].startswith("price: ")


@pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
def test_create_rejects_non_finite_price(client, admin_headers, literal):
    headers = {**admin_headers, "Content-Type": "application/json"}
    body = ('{"name": "X", "price": %s}' % literal).encode()
    resp = client.post("/trpc/plans.create", content=body, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "bad_request"


def test_update_rejects_non_finite_price(client, admin_headers, seed):
    seed.plan("x", "X", 30)
    headers = {**admin_headers, "Content-Type": "application/json"}
    resp = client.post("/trpc/plans.update", content=b'{"id": "x", "price": Infinity}', headers=headers)
    assert resp.status_code == 400
    assert client.get("/trpc/plans.find", params={"planId": "x"}).json()["price"] == 30


@pytest.mark.parametrize("days", ["inf", "-inf", "nan"])
def test_check_upgrade_price_rejects_non_finite_days(client, seed, days):
    seed.plan("old", "oldPlan", 30)
    seed.plan("new", "newPlan", 60)
    resp = client.get(
        "/trpc/plans.checkUpgradePrice",
        params={"currentPlanId": "old", "newPlanId": "new", "daysRemaining": days},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "bad_request"
