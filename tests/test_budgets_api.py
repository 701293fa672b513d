def create_budget(client, headers, **overrides):
    payload = {
        "name": "Groceries",
        "category": "Food",
        "amount": 100,
        "start_date": "2024-01-01",
        "end_date": "2024-01-31",
        "alert_thresholds": [{"percentage": 80}],
    }
    payload.update(overrides)
    response = client.post("/api/budgets", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["budget"]


def add_expense(client, headers, amount, category="Food", on="2024-01-10"):
    response = client.post("/api/transactions", json={
        "type": "expense", "amount": amount, "description": "Spend", "category": category,
        "transaction_date": on,
    }, headers=headers)
    assert response.status_code == 201, response.text


def test_create_budget_includes_derived_views(client, auth_headers):
    budget = create_budget(client, auth_headers)

    assert budget["status"] == "active"
    assert budget["time_remaining"] == {"days": 16, "status": "active"}
    assert budget["period"] == "monthly"
    assert budget["alert_thresholds"] == [{"percentage": 80.0, "is_enabled": True}]


def test_start_date_defaults_to_today(client, auth_headers):
    budget = create_budget(client, auth_headers, start_date=None, end_date="2024-02-15")

    assert budget["start_date"] == "2024-01-15"


def test_create_rejects_end_before_start(client, auth_headers):
    response = client.post("/api/budgets", json={
        "name": "Bad", "category": "Food", "amount": 50,
        "start_date": "2024-01-31", "end_date": "2024-01-31",
    }, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_create_rejects_end_before_defaulted_start(client, auth_headers):
    response = client.post("/api/budgets", json={
        "name": "Bad", "category": "Food", "amount": 50, "end_date": "2024-01-10",
    }, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "end_date"


def test_create_rejects_threshold_above_100(client, auth_headers):
    response = client.post("/api/budgets", json={
        "name": "Bad", "category": "Food", "amount": 50,
        "start_date": "2024-01-01", "end_date": "2024-01-31",
        "alert_thresholds": [{"percentage": 120}],
    }, headers=auth_headers)

    assert response.status_code == 400


def test_overlapping_active_budget_conflicts(client, auth_headers):
    create_budget(client, auth_headers)

    response = client.post("/api/budgets", json={
        "name": "More food", "category": "food", "amount": 200,
        "start_date": "2024-01-20", "end_date": "2024-02-20",
    }, headers=auth_headers)

    assert response.status_code == 409
    assert response.json()["success"] is False


def test_non_overlapping_or_inactive_budgets_do_not_conflict(client, auth_headers):
    create_budget(client, auth_headers)

    create_budget(client, auth_headers, start_date="2024-02-01", end_date="2024-02-29")
    create_budget(client, auth_headers, is_active=False)


def test_other_users_budgets_do_not_conflict(client, auth_headers, other_headers):
    create_budget(client, auth_headers)
    create_budget(client, other_headers)


def test_update_rejects_end_before_start(client, auth_headers):
    budget = create_budget(client, auth_headers)

    response = client.put(f"/api/budgets/{budget['id']}", json={"end_date": "2023-12-31"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "end_date"


def test_update_rechecks_conflicts(client, auth_headers):
    create_budget(client, auth_headers)
    february = create_budget(client, auth_headers, start_date="2024-02-01", end_date="2024-02-29")

    response = client.put(f"/api/budgets/{february['id']}", json={"start_date": "2024-01-25"},
                          headers=auth_headers)

    assert response.status_code == 409


def test_update_budget(client, auth_headers):
    budget = create_budget(client, auth_headers)

    response = client.put(f"/api/budgets/{budget['id']}", json={"amount": 250, "name": "Food & drink"},
                          headers=auth_headers)

    assert response.status_code == 200
    updated = response.json()["data"]["budget"]
    assert updated["amount"] == 250
    assert updated["name"] == "Food & drink"
    assert updated["category"] == "Food"


def test_list_and_active_budgets(client, auth_headers):
    create_budget(client, auth_headers)
    create_budget(client, auth_headers, name="Later", start_date="2024-03-01", end_date="2024-03-31")
    create_budget(client, auth_headers, name="Paused", category="Fun", is_active=False)

    listing = client.get("/api/budgets", headers=auth_headers).json()
    assert listing["total"] == 3
    assert listing["data"]["budgets"][0]["name"] == "Paused"

    inactive = client.get("/api/budgets", params={"isActive": "false"}, headers=auth_headers).json()
    assert [b["name"] for b in inactive["data"]["budgets"]] == ["Paused"]

    active = client.get("/api/budgets/active", headers=auth_headers).json()["data"]["budgets"]
    assert [b["name"] for b in active] == ["Groceries"]


def test_upcoming_budget_status(client, auth_headers):
    budget = create_budget(client, auth_headers, start_date="2024-03-01", end_date="2024-03-31")

    fetched = client.get(f"/api/budgets/{budget['id']}", headers=auth_headers).json()["data"]["budget"]

    assert fetched["status"] == "upcoming"


def test_budget_performance(client, auth_headers):
    budget = create_budget(client, auth_headers)
    add_expense(client, auth_headers, 70)
    add_expense(client, auth_headers, 50, on="2024-01-12")
    add_expense(client, auth_headers, 500, category="Rent")

    response = client.get(f"/api/budgets/{budget['id']}/performance", headers=auth_headers)

    assert response.status_code == 200
    performance = response.json()["data"]["performance"]
    assert performance["total_spent"] == 120
    assert performance["remaining"] == -20
    assert performance["percentage"] == 100
    assert performance["actual_percentage"] == 120
    assert performance["is_over_budget"] is True
    assert performance["transactions"] == 2
    assert performance["triggered_alerts"] == [80.0]
    assert performance["budget"]["id"] == budget["id"]


def test_budget_ownership(client, auth_headers, other_headers):
    budget = create_budget(client, auth_headers)
    url = f"/api/budgets/{budget['id']}"

    assert client.get(url, headers=other_headers).status_code == 404
    assert client.get(f"{url}/performance", headers=other_headers).status_code == 404
    assert client.put(url, json={"amount": 5}, headers=other_headers).status_code == 404
    assert client.delete(url, headers=other_headers).status_code == 404


def test_delete_budget_keeps_transactions(client, auth_headers):
    budget = create_budget(client, auth_headers)
    add_expense(client, auth_headers, 30)

    assert client.delete(f"/api/budgets/{budget['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/budgets/{budget['id']}", headers=auth_headers).status_code == 404
    assert client.get("/api/transactions", headers=auth_headers).json()["total"] == 1


def test_amount_that_rounds_to_zero_is_rejected(client, auth_headers):
    response = client.post("/api/budgets", json={
        "name": "Tiny", "category": "Food", "amount": 0.004,
        "start_date": "2024-01-01", "end_date": "2024-01-31",
    }, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "amount"


def test_update_rejects_blank_text(client, auth_headers):
    budget = create_budget(client, auth_headers)

    for field in ("name", "category"):
        response = client.put(f"/api/budgets/{budget['id']}", json={field: "   "}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == field

    fetched = client.get(f"/api/budgets/{budget['id']}", headers=auth_headers).json()["data"]["budget"]
    assert (fetched["name"], fetched["category"]) == ("Groceries", "Food")
