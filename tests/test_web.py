import pytest

from loan_progress_web.app import create_app

LOAN = {"principal": 1000000, "annual_rate_percent": 10, "tenure_months": 12}


@pytest.fixture
def client():
    app = create_app({"DATABASE_URL": "sqlite://", "TESTING": True})
    with app.test_client() as client:
        yield client


def test_emi_endpoint(client):
    response = client.post("/api/emi", json=LOAN)
    assert response.status_code == 200
    assert response.get_json() == {"standard_emi": 87916.0}


def test_schedule_with_inline_ledger(client):
    body = dict(LOAN, start_date="2025-01-01", ledger=[{"month": 6, "lumpsum": 200000}])
    response = client.post("/api/schedule", json=body)
    assert response.status_code == 200
    schedule = response.get_json()["schedule"]
    assert len(schedule) < 12
    assert schedule[0]["date"] == "2025-01-01"
    assert schedule[-1]["ending_balance"] == 0


def test_progress_uses_stored_ledger(client):
    response = client.put("/api/ledger/6", json={"lumpsum": 200000, "date": "2025-06-03"})
    assert response.status_code == 200
    assert response.get_json()["month"] == 6

    listed = client.get("/api/ledger").get_json()["ledger"]
    assert [row["month"] for row in listed] == [6]

    progress = client.post("/api/progress", json=LOAN).get_json()["progress"]
    assert progress["months_saved"] > 0
    assert progress["remaining_balance"] == 0

    partial = client.post("/api/progress", json=dict(LOAN, as_of_month=6)).get_json()["progress"]
    assert partial["months_saved"] == 0
    assert partial["remaining_tenure"] == 6


def test_ledger_put_replaces_month(client):
    client.put("/api/ledger/2", json={"prepayment": 1000})
    client.put("/api/ledger/2", json={"prepayment": 2500, "emi_paid": 90000})
    rows = client.get("/api/ledger").get_json()["ledger"]
    assert len(rows) == 1
    assert rows[0]["prepayment"] == 2500
    assert rows[0]["emi_paid"] == 90000


def test_ledger_delete_and_clear(client):
    client.put("/api/ledger/1", json={"lumpsum": 10})
    client.put("/api/ledger/2", json={"lumpsum": 20})
    assert client.delete("/api/ledger/1").status_code == 200
    assert client.delete("/api/ledger/1").status_code == 404
    assert [r["month"] for r in client.get("/api/ledger").get_json()["ledger"]] == [2]
    client.delete("/api/ledger")
    assert client.get("/api/ledger").get_json()["ledger"] == []


def test_ledgers_are_per_session():
    app = create_app({"DATABASE_URL": "sqlite://", "TESTING": True})
    with app.test_client() as first, app.test_client() as second:
        first.put("/api/ledger/3", json={"lumpsum": 100})
        assert second.get("/api/ledger").get_json()["ledger"] == []


@pytest.mark.parametrize(
    "body",
    [
        {"principal": 1000, "annual_rate_percent": 10},
        {"principal": -5, "annual_rate_percent": 10, "tenure_months": 12},
        {"principal": "abc", "annual_rate_percent": 10, "tenure_months": 12},
        {"principal": 1000, "annual_rate_percent": 10, "tenure_months": 0},
    ],
)
def test_invalid_terms_return_400(client, body):
    response = client.post("/api/schedule", json=body)
    assert response.status_code == 400
    assert "error" in response.get_json()


def test_invalid_ledger_row_returns_400(client):
    response = client.put("/api/ledger/4", json={"lumpsum": -1})
    assert response.status_code == 400


def test_rate_too_small_to_register_is_accepted(client):
    response = client.post("/api/emi", json=dict(LOAN, annual_rate_percent="1e-26"))
    assert response.status_code == 200
    assert response.get_json() == {"standard_emi": 83333.0}


def test_non_string_start_date_returns_400(client):
    response = client.post("/api/schedule", json=dict(LOAN, start_date=2025))
    assert response.status_code == 400


def test_negative_installment_in_ledger_returns_400(client):
    response = client.put("/api/ledger/4", json={"emi_paid": -100})
    assert response.status_code == 400
    assert client.get("/api/ledger").get_json()["ledger"] == []
