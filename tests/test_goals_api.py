def create_goal(client, headers, **overrides):
    payload = {
        "name": "Emergency fund",
        "target_amount": 1000,
        "target_date": "2024-03-15",
    }
    payload.update(overrides)
    response = client.post("/api/goals", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]["goal"]


def contribute(client, headers, goal_id, amount, **extra):
    return client.post(f"/api/goals/{goal_id}/contribute", json={"amount": amount, **extra}, headers=headers)


def goal_notifications(notifications, client, headers):
    user_id = client.get("/api/auth/me", headers=headers).json()["data"]["user"]["id"]
    return [n for n in notifications.history(user_id) if n.tag == "goal"]


def test_create_goal_defaults_and_derived_views(client, auth_headers):
    goal = create_goal(client, auth_headers)

    assert goal["type"] == "savings"
    assert goal["priority"] == "medium"
    assert goal["color"] == "#3B82F6"
    assert goal["icon"] == "fas fa-bullseye"
    assert goal["start_date"] == "2024-01-15"
    assert goal["is_completed"] is False
    assert goal["status"] == "just_started"
    assert goal["progress"]["percentage"] == 0
    assert goal["time_remaining"] == {"days": 60, "status": "plenty_of_time"}
    assert goal["suggested_monthly_contribution"] == 500


def test_create_rejects_past_target_date(client, auth_headers):
    for target_date in ("2024-01-15", "2023-12-01"):
        response = client.post("/api/goals", json={
            "name": "Late", "target_amount": 100, "target_date": target_date,
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "target_date"


def test_create_rejects_bad_color(client, auth_headers):
    response = client.post("/api/goals", json={
        "name": "Car", "target_amount": 100, "target_date": "2024-06-01", "color": "blue",
    }, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "color"


def test_goal_created_at_target_is_completed(client, auth_headers, notifications):
    goal = create_goal(client, auth_headers, current_amount=1000)

    assert goal["is_completed"] is True
    assert goal["completed_at"] is not None
    assert goal["status"] == "completed"
    assert len(goal_notifications(notifications, client, auth_headers)) == 1


def test_contribute_raises_current_amount(client, auth_headers):
    goal = create_goal(client, auth_headers)

    response = contribute(client, auth_headers, goal["id"], 600, description="Bonus")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Contribution added successfully"
    updated = body["data"]["goal"]
    assert updated["current_amount"] == 600
    assert updated["status"] == "good_progress"
    assert updated["is_completed"] is False
    assert len(updated["contributions"]) == 1
    assert updated["contributions"][0]["description"] == "Bonus"
    assert updated["contributions"][0]["source"] == "manual"


def test_contribute_rejects_non_positive_amount(client, auth_headers):
    goal = create_goal(client, auth_headers)

    for amount in (0, -10):
        response = contribute(client, auth_headers, goal["id"], amount)
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "amount"

    fetched = client.get(f"/api/goals/{goal['id']}", headers=auth_headers).json()["data"]["goal"]
    assert fetched["current_amount"] == 0
    assert fetched["contributions"] == []


def test_completion_happens_once(client, auth_headers, notifications):
    goal = create_goal(client, auth_headers)

    contribute(client, auth_headers, goal["id"], 600)
    completed = contribute(client, auth_headers, goal["id"], 400).json()["data"]["goal"]
    assert completed["is_completed"] is True
    assert completed["status"] == "completed"
    first_completed_at = completed["completed_at"]

    after = contribute(client, auth_headers, goal["id"], 100).json()["data"]["goal"]
    assert after["current_amount"] == 1100
    assert after["completed_at"] == first_completed_at
    assert after["progress"]["percentage"] == 100
    assert len(after["contributions"]) == 3
    assert len(goal_notifications(notifications, client, auth_headers)) == 1


def test_update_can_complete_goal(client, auth_headers, notifications):
    goal = create_goal(client, auth_headers)

    response = client.put(f"/api/goals/{goal['id']}", json={"target_amount": 50, "current_amount": 50},
                          headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"]["goal"]["is_completed"] is True
    assert len(goal_notifications(notifications, client, auth_headers)) == 1

    lowered = client.put(f"/api/goals/{goal['id']}", json={"current_amount": 10}, headers=auth_headers)
    # Completion is never reverted
    assert lowered.json()["data"]["goal"]["is_completed"] is True


def test_update_rejects_past_target_date(client, auth_headers):
    goal = create_goal(client, auth_headers)

    response = client.put(f"/api/goals/{goal['id']}", json={"target_date": "2024-01-01"}, headers=auth_headers)

    assert response.status_code == 400


def test_update_replaces_milestones(client, auth_headers):
    goal = create_goal(client, auth_headers, milestones=[
        {"name": "Quarter", "target_amount": 250},
        {"name": "Half", "target_amount": 500},
    ])

    response = client.put(f"/api/goals/{goal['id']}", json={"milestones": [
        {"name": "Third", "target_amount": 333},
    ]}, headers=auth_headers)

    milestones = response.json()["data"]["goal"]["milestones"]
    assert [(m["position"], m["name"]) for m in milestones] == [(0, "Third")]


def test_milestone_patch(client, auth_headers):
    goal = create_goal(client, auth_headers, milestones=[
        {"name": "Quarter", "target_amount": 250},
        {"name": "Half", "target_amount": 500},
    ])

    response = client.patch(f"/api/goals/{goal['id']}/milestones/1", json={"is_completed": True},
                            headers=auth_headers)

    assert response.status_code == 200
    milestones = response.json()["data"]["goal"]["milestones"]
    assert milestones[0]["is_completed"] is False
    assert milestones[1]["is_completed"] is True
    assert milestones[1]["completed_at"] is not None

    undone = client.patch(f"/api/goals/{goal['id']}/milestones/1", json={"is_completed": False},
                          headers=auth_headers).json()["data"]["goal"]["milestones"]
    assert undone[1]["is_completed"] is False
    assert undone[1]["completed_at"] is None


def test_milestone_patch_invalid_index(client, auth_headers):
    goal = create_goal(client, auth_headers, milestones=[{"name": "Quarter", "target_amount": 250}])

    for index in (1, -1):
        response = client.patch(f"/api/goals/{goal['id']}/milestones/{index}", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "index"


def test_list_orders_by_priority_then_target_date(client, auth_headers):
    create_goal(client, auth_headers, name="Low", priority="low", target_date="2024-02-01")
    create_goal(client, auth_headers, name="High late", priority="high", target_date="2024-12-01")
    create_goal(client, auth_headers, name="High soon", priority="high", target_date="2024-06-01")
    create_goal(client, auth_headers, name="Urgent", priority="urgent", target_date="2025-01-01")
    create_goal(client, auth_headers, name="Done", current_amount=1000)

    listing = client.get("/api/goals", headers=auth_headers).json()
    assert [g["name"] for g in listing["data"]["goals"]] == ["Urgent", "High soon", "High late", "Done", "Low"]

    active = client.get("/api/goals/active", headers=auth_headers).json()["data"]["goals"]
    assert [g["name"] for g in active] == ["Urgent", "High soon", "High late", "Low"]

    completed = client.get("/api/goals", params={"isCompleted": "true"}, headers=auth_headers).json()
    assert completed["total"] == 1


def test_list_filters_by_type(client, auth_headers):
    create_goal(client, auth_headers, name="Pay card", type="debt_payment")
    create_goal(client, auth_headers, name="Save")

    listing = client.get("/api/goals", params={"type": "debt_payment"}, headers=auth_headers).json()

    assert [g["name"] for g in listing["data"]["goals"]] == ["Pay card"]


def test_goal_stats(client, auth_headers):
    create_goal(client, auth_headers, current_amount=250)
    create_goal(client, auth_headers, name="Trip", target_amount=500, current_amount=500)

    stats = client.get("/api/goals/stats", headers=auth_headers).json()["data"]["stats"]

    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["completed"] == 1
    assert stats["overdue"] == 0
    assert stats["total_target_amount"] == 1500
    assert stats["total_current_amount"] == 750
    assert stats["overall_progress"] == 50


def test_delete_goal(client, auth_headers):
    goal = create_goal(client, auth_headers, milestones=[{"name": "Quarter", "target_amount": 250}])
    contribute(client, auth_headers, goal["id"], 100)

    assert client.delete(f"/api/goals/{goal['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/api/goals/{goal['id']}", headers=auth_headers).status_code == 404


def test_goal_ownership(client, auth_headers, other_headers):
    goal = create_goal(client, auth_headers)
    url = f"/api/goals/{goal['id']}"

    assert client.get(url, headers=other_headers).status_code == 404
    assert client.put(url, json={"name": "Mine"}, headers=other_headers).status_code == 404
    assert contribute(client, other_headers, goal["id"], 50).status_code == 404
    assert client.patch(f"{url}/milestones/0", json={}, headers=other_headers).status_code == 404
    assert client.delete(url, headers=other_headers).status_code == 404

    untouched = client.get(url, headers=auth_headers).json()["data"]["goal"]
    assert untouched["current_amount"] == 0
    assert untouched["name"] == "Emergency fund"


def test_amounts_that_round_to_zero_are_rejected(client, auth_headers):
    response = client.post("/api/goals", json={
        "name": "Tiny", "target_amount": 0.004, "target_date": "2024-06-01",
    }, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "target_amount"

    goal = create_goal(client, auth_headers)
    assert client.put(f"/api/goals/{goal['id']}", json={"target_amount": 0.004},
                      headers=auth_headers).status_code == 400

    contribution = contribute(client, auth_headers, goal["id"], 0.004)
    assert contribution.status_code == 400
    assert contribution.json()["errors"][0]["field"] == "amount"


def test_sub_dollar_contribution_reaches_target(client, auth_headers, notifications):
    goal = create_goal(client, auth_headers, target_amount="0.80", current_amount="0.10")

    completed = contribute(client, auth_headers, goal["id"], "0.70").json()["data"]["goal"]

    assert completed["current_amount"] == 0.8
    assert completed["is_completed"] is True
    assert completed["status"] == "completed"
    assert len(goal_notifications(notifications, client, auth_headers)) == 1


def test_update_rejects_blank_name(client, auth_headers):
    goal = create_goal(client, auth_headers)

    response = client.put(f"/api/goals/{goal['id']}", json={"name": "   "}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "name"
    fetched = client.get(f"/api/goals/{goal['id']}", headers=auth_headers).json()["data"]["goal"]
    assert fetched["name"] == "Emergency fund"
