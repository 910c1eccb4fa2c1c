from backend.fintrack.db import SessionLocal
from backend.fintrack.models.category_model import Category


def _category(client, user, name="Food"):
    response = client.post("/categories", headers=user["headers"], json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


def _spend(client, user, amount, date, category_id=None):
    payload = {"amount": amount, "date": date}
    if category_id is not None:
        payload["category_id"] = category_id
    response = client.post("/transactions", headers=user["headers"], json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _budget(client, user, **fields):
    payload = {"limit": "1000", "period": "monthly", "start_date": "2025-06-01", **fields}
    response = client.post("/budgets", headers=user["headers"], json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_overall_budget_progress(client, alice):
    _spend(client, alice, "200.00", "2025-06-02")
    _spend(client, alice, "250.00", "2025-06-30")
    _spend(client, alice, "999.00", "2025-07-01")

    budget = _budget(client, alice)
    assert budget["category_id"] is None
    assert budget["category"]["name"] == "Overall Budget"
    assert budget["range"] == {"start": "2025-06-01", "end": "2025-06-30"}
    assert budget["stats"] == {
        "limit": "1000.00",
        "spent": "450.00",
        "remaining": "550.00",
        "progress_percent": "45.00",
        "is_over_budget": False,
    }


def test_over_budget(client, alice):
    _spend(client, alice, "700.00", "2025-06-05")
    _spend(client, alice, "500.00", "2025-06-06")

    stats = _budget(client, alice)["stats"]
    assert stats["spent"] == "1200.00"
    assert stats["remaining"] == "0.00"
    assert stats["progress_percent"] == "120.00"
    assert stats["is_over_budget"] is True


def test_zero_limit_budget(client, alice):
    _spend(client, alice, "5.00", "2025-06-05")
    stats = _budget(client, alice, limit="0")["stats"]
    assert stats["progress_percent"] == "0.00"
    assert stats["is_over_budget"] is True


def test_category_budget_counts_only_its_category(client, alice):
    food = _category(client, alice, "Food")
    rent = _category(client, alice, "Rent")
    _spend(client, alice, "80.00", "2025-06-03", category_id=food["id"])
    _spend(client, alice, "900.00", "2025-06-03", category_id=rent["id"])

    budget = _budget(client, alice, limit="200", category_id=food["id"])
    assert budget["category"]["name"] == "Food"
    assert budget["stats"]["spent"] == "80.00"
    assert budget["stats"]["progress_percent"] == "40.00"


def test_amount_is_accepted_for_limit(client, alice):
    payload = {"amount": "300", "period": "weekly", "start_date": "2025-06-01"}
    response = client.post("/budgets", headers=alice["headers"], json=payload)
    assert response.status_code == 201
    assert response.json()["limit"] == "300.00"
    assert response.json()["range"]["end"] == "2025-06-07"


def test_explicit_end_date_is_kept(client, alice):
    budget = _budget(client, alice, end_date="2025-06-15")
    assert budget["range"]["end"] == "2025-06-15"


def test_end_before_start_rejected(client, alice):
    response = client.post(
        "/budgets",
        headers=alice["headers"],
        json={"limit": "10", "period": "monthly", "start_date": "2025-06-10", "end_date": "2025-06-01"},
    )
    assert response.status_code == 422
    assert response.json()["errors"] == {
        "end_date": ["The end date must be a date after or equal to start date."]
    }


def test_invalid_period_and_negative_limit(client, alice):
    response = client.post(
        "/budgets",
        headers=alice["headers"],
        json={"limit": "-1", "period": "daily", "start_date": "2025-06-01"},
    )
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"limit", "period"}


def test_budget_with_foreign_or_deleted_category_rejected(client, alice, bob):
    bobs = _category(client, bob, "Bob's")
    response = client.post(
        "/budgets",
        headers=alice["headers"],
        json={"limit": "10", "period": "monthly", "start_date": "2025-06-01", "category_id": bobs["id"]},
    )
    assert response.status_code == 422

    gone = _category(client, alice, "Gone")
    client.delete(f"/categories/{gone['id']}", headers=alice["headers"])
    response = client.post(
        "/budgets",
        headers=alice["headers"],
        json={"limit": "10", "period": "monthly", "start_date": "2025-06-01", "category_id": gone["id"]},
    )
    assert response.status_code == 422


def test_hard_deleted_category_turns_budget_into_overall(client, alice):
    food = _category(client, alice, "Food")
    _spend(client, alice, "10.00", "2025-06-03", category_id=food["id"])
    _spend(client, alice, "15.00", "2025-06-04")
    budget = _budget(client, alice, limit="100", category_id=food["id"])
    assert budget["stats"]["spent"] == "10.00"

    with SessionLocal() as db:
        db.delete(db.get(Category, food["id"]))
        db.commit()

    shown = client.get(f"/budgets/{budget['id']}", headers=alice["headers"]).json()
    assert shown["category_id"] is None
    assert shown["category"]["name"] == "Overall Budget"
    assert shown["stats"]["spent"] == "25.00"


def test_soft_deleted_category_stays_on_budget(client, alice):
    food = _category(client, alice, "Food")
    budget = _budget(client, alice, limit="100", category_id=food["id"])
    client.delete(f"/categories/{food['id']}", headers=alice["headers"])

    shown = client.get(f"/budgets/{budget['id']}", headers=alice["headers"]).json()
    assert shown["category_id"] == food["id"]
    assert shown["category"]["is_deleted"] is True


def test_open_ended_budget_counts_up_to_today(client, alice):
    _spend(client, alice, "40.00", "2020-03-01")
    _spend(client, alice, "60.00", "2999-01-01")
    budget = _budget(client, alice, start_date="2020-01-01")

    response = client.patch(f"/budgets/{budget['id']}", headers=alice["headers"], json={"end_date": None})
    assert response.status_code == 200
    assert response.json()["range"]["end"] is None
    assert response.json()["stats"]["spent"] == "40.00"


def test_category_cannot_change_after_creation(client, alice):
    food = _category(client, alice, "Food")
    budget = _budget(client, alice)

    response = client.patch(f"/budgets/{budget['id']}", headers=alice["headers"], json={"category_id": food["id"]})
    assert response.status_code == 422
    assert response.json()["error_code"] == "BUSINESS_RULE_VIOLATION"


def test_changing_period_recomputes_end_date(client, alice):
    budget = _budget(client, alice)
    url = f"/budgets/{budget['id']}"

    weekly = client.patch(url, headers=alice["headers"], json={"period": "weekly"}).json()
    assert weekly["period"] == "weekly"
    assert weekly["range"] == {"start": "2025-06-01", "end": "2025-06-07"}

    moved = client.put(url, headers=alice["headers"], json={"start_date": "2025-01-31", "period": "monthly"}).json()
    assert moved["range"] == {"start": "2025-01-31", "end": "2025-02-27"}

    limited = client.patch(url, headers=alice["headers"], json={"amount": "50"}).json()
    assert limited["limit"] == "50.00"
    assert limited["range"]["end"] == "2025-02-27"


def test_update_rejects_end_before_stored_start(client, alice):
    budget = _budget(client, alice)
    response = client.patch(f"/budgets/{budget['id']}", headers=alice["headers"], json={"end_date": "2025-05-01"})
    assert response.status_code == 422
    assert "end_date" in response.json()["errors"]


def test_list_and_delete(client, alice, bob):
    first = _budget(client, alice)
    second = _budget(client, alice, period="yearly")
    _budget(client, bob)

    listed = client.get("/budgets", headers=alice["headers"]).json()
    assert [b["id"] for b in listed] == [second["id"], first["id"]]

    assert client.delete(f"/budgets/{first['id']}", headers=alice["headers"]).status_code == 204
    assert client.get(f"/budgets/{first['id']}", headers=alice["headers"]).status_code == 404


def test_other_users_budget_is_forbidden(client, alice, bob):
    budget = _budget(client, alice)
    url = f"/budgets/{budget['id']}"

    assert client.get(url, headers=bob["headers"]).status_code == 403
    assert client.patch(url, headers=bob["headers"], json={"limit": "1"}).status_code == 403
    assert client.delete(url, headers=bob["headers"]).status_code == 403
