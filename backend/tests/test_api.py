# tests/test_api.py
"""
Smoke tests for the HTTP surface: views parse, delegate to commands and
translate failures.
"""

import pytest


@pytest.mark.django_db
class TestAuthRequired:
    def test_anonymous_is_rejected(self, api_client):
        response = api_client.get("/api/accounting/accounts/")
        assert response.status_code == 401

    def test_me(self, authenticated_client, user):
        response = authenticated_client.get("/api/auth/me/")
        assert response.status_code == 200


@pytest.mark.django_db
class TestAccountingApi:
    def test_chart_is_listed(self, authenticated_client):
        response = authenticated_client.get("/api/accounting/accounts/")
        assert response.status_code == 200
        codes = {row["code"] for row in response.json()}
        assert {"1-1001", "2-1100", "4-1100"} <= codes

    def test_manual_entry_and_trial_balance(self, authenticated_client, cash_account, capital_account):
        response = authenticated_client.post(
            "/api/accounting/journal-entries/",
            {
                "date": "2025-03-01",
                "description": "Setoran modal",
                "lines": [
                    {"account_id": cash_account.id, "debit": "5000000"},
                    {"account_id": capital_account.id, "credit": "5000000"},
                ],
            },
            format="json",
        )
        assert response.status_code == 201, response.content

        report = authenticated_client.get("/api/accounting/reports/trial-balance/").json()
        assert report["is_balanced"] is True
        assert report["total_debit"] == "5000000.00"

    def test_unbalanced_entry_is_a_bad_request(self, authenticated_client, cash_account, capital_account):
        response = authenticated_client.post(
            "/api/accounting/journal-entries/",
            {
                "date": "2025-03-01",
                "lines": [
                    {"account_id": cash_account.id, "debit": "100"},
                    {"account_id": capital_account.id, "credit": "90"},
                ],
            },
            format="json",
        )
        assert response.status_code == 400

    def test_single_line_fails_validation(self, authenticated_client, cash_account):
        response = authenticated_client.post(
            "/api/accounting/journal-entries/",
            {"date": "2025-03-01", "lines": [{"account_id": cash_account.id, "debit": "100"}]},
            format="json",
        )
        assert response.status_code == 400
        assert "lines" in response.json()


@pytest.mark.django_db
class TestPosApi:
    def test_open_session_and_sell(self, authenticated_client, product, cash_method):
        opened = authenticated_client.post("/api/pos/sessions/", {"opening_balance": "100000"}, format="json")
        assert opened.status_code == 201, opened.content

        sale = authenticated_client.post(
            "/api/pos/sales/",
            {
                "client_reference": "till-1-0001",
                "items": [{"product_id": product.id, "quantity": "2"}],
                "payments": [{"payment_method_id": cash_method.id, "amount": "50000"}],
            },
            format="json",
        )
        assert sale.status_code == 201, sale.content
        assert sale.json()["change_amount"] == "20000.00"

        current = authenticated_client.get("/api/pos/sessions/current/").json()
        assert current["transaction_count"] == 1
        assert current["expected_cash"] == "130000.00"

    def test_no_current_session(self, authenticated_client):
        response = authenticated_client.get("/api/pos/sessions/current/")
        assert response.status_code == 404


@pytest.mark.django_db
class TestTradeApi:
    def test_empty_receivables_aging(self, authenticated_client):
        response = authenticated_client.get("/api/trade/aging/receivables/?as_of=2025-03-31")
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == "0.00"
        assert body["rows"] == []

    def test_bad_as_of(self, authenticated_client):
        response = authenticated_client.get("/api/trade/aging/receivables/?as_of=31-03-2025")
        assert response.status_code == 400


@pytest.mark.django_db
class TestEventsApi:
    def test_posted_entries_show_their_number(self, authenticated_client, cash_account, capital_account):
        authenticated_client.post(
            "/api/accounting/journal-entries/",
            {
                "date": "2025-03-01",
                "lines": [
                    {"account_id": cash_account.id, "debit": "100"},
                    {"account_id": capital_account.id, "credit": "100"},
                ],
            },
            format="json",
        )

        response = authenticated_client.get("/api/events/?event_type=journal_entry.posted")

        assert response.status_code == 200
        rows = response.json()
        assert [row["document"] for row in rows] == ["JE-202503-0001"]

    def test_integrity_summary(self, authenticated_client):
        response = authenticated_client.get("/api/events/integrity-summary/")
        assert response.status_code == 200
        assert response.json()["has_potential_gaps"] is False
