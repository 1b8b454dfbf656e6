"""End-to-end tests through the HTTP API."""

import pytest

from conftest import PASSWORD

CUSTOMER = {
    "name": "Suresh Kumar",
    "phone": "9811122233",
    "address": "12 MG Road, Jaipur",
    "id_proof": "123412341234",
}


async def login(client, email, password=PASSWORD):
    return await client.post("/auth/login", data={"username": email, "password": password})


class TestAuthFlow:
    """Sign-up, approval and session state"""

    @pytest.mark.asyncio
    async def test_register_then_wait_for_approval(self, client, admin_id, auth_headers):
        response = await client.post("/auth/register", json={
            "email": "new@shop.in",
            "password": PASSWORD,
            "full_name": "New Owner",
            "shop_name": "New Shop",
            "phone": "9988776655",
        })
        assert response.status_code == 201
        user = response.json()
        assert user["status"] == "pending"
        assert user["email_confirmed"] is False

        response = await login(client, "new@shop.in")
        assert response.status_code == 403
        assert response.json() == {
            "title": "Access Denied",
            "detail": "Your account is awaiting admin approval.",
        }

        response = await client.post(f"/admin/users/{user['id']}/approve", headers=auth_headers(admin_id))
        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["email_confirmed"] is True

        response = await login(client, "new@shop.in")
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = await client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["is_approved"] is True
        assert response.json()["is_admin"] is False
        assert response.json()["roles"] == ["shop_owner"]

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, shop_id):
        response = await client.post("/auth/register", json={
            "email": "ravi@sharmastores.in",
            "password": PASSWORD,
            "full_name": "Ravi Again",
            "shop_name": "Another Shop",
            "phone": "9988776655",
        })
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, shop_id):
        response = await login(client, "ravi@sharmastores.in", "not-the-password")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/customers/")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_admin_routes_need_admin(self, client, shop_id, auth_headers):
        response = await client.get("/admin/users", headers=auth_headers(shop_id))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_toggle_admin(self, client, shop_id, admin_id, auth_headers):
        response = await client.post(f"/admin/users/{shop_id}/toggle-admin", headers=auth_headers(admin_id))
        assert response.json()["message"] == "Admin role granted"

        response = await client.get("/auth/session", headers=auth_headers(shop_id))
        assert response.json()["is_admin"] is True

        response = await client.post(f"/admin/users/{shop_id}/toggle-admin", headers=auth_headers(admin_id))
        assert response.json()["message"] == "Admin role revoked"

    @pytest.mark.asyncio
    async def test_profile_update(self, client, shop_id, auth_headers):
        response = await client.put(
            "/users/me", json={"shop_location": "Jaipur", "phone": "9876500000"}, headers=auth_headers(shop_id)
        )
        assert response.status_code == 200
        assert response.json()["shop_location"] == "Jaipur"

        response = await client.put("/users/me", json={"phone": "12345"}, headers=auth_headers(shop_id))
        assert response.status_code == 422


class TestLedgerFlow:

    @pytest.mark.asyncio
    async def test_issue_pay_and_settle(self, client, shop_id, auth_headers):
        headers = auth_headers(shop_id)
        response = await client.post("/customers/", json=CUSTOMER, headers=headers)
        assert response.status_code == 200
        assert response.json()["is_new"] is True
        customer_id = response.json()["customer"]["id"]

        response = await client.post(
            "/credits/", json={"customer_id": customer_id, "amount": "1000", "description": "Groceries"},
            headers=headers,
        )
        assert response.status_code == 201
        credit_id = response.json()["id"]
        assert response.json()["status"] == "pending"

        response = await client.post(f"/credits/{credit_id}/payments", json={"amount": "400"}, headers=headers)
        assert response.status_code == 201

        response = await client.get(f"/credits/{credit_id}", headers=headers)
        assert response.json()["status"] == "partial"
        assert response.json()["outstanding"] == 600.0

        response = await client.post(f"/credits/{credit_id}/payments", json={"amount": "700"}, headers=headers)
        assert response.status_code == 422
        assert response.json()["title"] == "Payment exceeds outstanding"

        response = await client.post(f"/credits/{credit_id}/mark-paid", headers=headers)
        assert response.status_code == 200
        assert response.json()["amount_paid"] == 600.0
        assert response.json()["credit"]["status"] == "paid"

        response = await client.post(f"/credits/{credit_id}/mark-paid", headers=headers)
        assert response.status_code == 409

        response = await client.get(f"/credits/{credit_id}/history", headers=headers)
        assert [row["new_status"] for row in response.json()] == ["pending", "partial", "paid"]

        response = await client.get("/payments/", headers=headers)
        assert len(response.json()) == 2
        assert {row["customer_name"] for row in response.json()} == {"Suresh Kumar"}

    @pytest.mark.asyncio
    async def test_invalid_amounts(self, client, shop_id, customer_id, auth_headers):
        headers = auth_headers(shop_id)
        for amount in ("0", "-5", "10.123"):
            response = await client.post(
                "/credits/", json={"customer_id": customer_id, "amount": amount}, headers=headers
            )
            assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_customer_payment_and_defaulter(self, client, shop_id, customer_id, auth_headers):
        headers = auth_headers(shop_id)
        for amount in ("1000", "500"):
            await client.post("/credits/", json={"customer_id": customer_id, "amount": amount}, headers=headers)

        response = await client.post(
            f"/customers/{customer_id}/payments", json={"amount": "1200", "payment_method": "upi"}, headers=headers
        )
        assert response.status_code == 201
        assert [p["amount"] for p in response.json()["payments"]] == [1000.0, 200.0]

        response = await client.put(
            f"/customers/{customer_id}/defaulter", json={"is_defaulter": True}, headers=headers
        )
        assert response.status_code == 400

        response = await client.put(
            f"/customers/{customer_id}/defaulter", json={"is_defaulter": True, "confirm": True}, headers=headers
        )
        assert response.status_code == 200
        # The settled credit keeps its history but is flagged with the rest
        assert {c["status"] for c in response.json()} == {"defaulter"}

        response = await client.get("/customers/", headers=headers)
        assert response.json()[0]["status"] == "defaulter"

    @pytest.mark.asyncio
    async def test_edit_with_password(self, client, shop_id, customer_id, auth_headers):
        headers = auth_headers(shop_id)
        response = await client.post(
            "/credits/", json={"customer_id": customer_id, "amount": "1000"}, headers=headers
        )
        credit_id = response.json()["id"]

        response = await client.patch(
            f"/credits/{credit_id}", json={"amount": "800", "password": "wrong-password"}, headers=headers
        )
        assert response.status_code == 401

        response = await client.patch(
            f"/credits/{credit_id}", json={"amount": "800", "password": PASSWORD}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["amount"] == 800.0

    @pytest.mark.asyncio
    async def test_other_shop_cannot_edit_customer(self, client, other_shop_id, customer_id, auth_headers):
        response = await client.put(
            f"/customers/{customer_id}", json={"name": "Changed Name"}, headers=auth_headers(other_shop_id)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_csv_import(self, client, shop_id, auth_headers):
        content = (
            "name,phone,address,id_proof\n"
            "Meena Devi,9822233344,45 Station Road Jaipur,234523452345\n"
        )
        response = await client.post(
            "/customers/import",
            files={"file": ("customers.csv", content.encode(), "text/csv")},
            headers=auth_headers(shop_id),
        )
        assert response.status_code == 200
        assert response.json()["created"] == 1

        response = await client.post(
            "/customers/import",
            files={"file": ("customers.txt", content.encode(), "text/plain")},
            headers=auth_headers(shop_id),
        )
        assert response.status_code == 400


class TestReportsApi:

    @pytest.mark.asyncio
    async def test_global_search(self, client, shop_id, other_shop_id, customer_id, auth_headers):
        await client.post(
            "/credits/", json={"customer_id": customer_id, "amount": "2000"}, headers=auth_headers(shop_id)
        )

        response = await client.get(
            "/reports/global-search", params={"aadhar_no": CUSTOMER["id_proof"]},
            headers=auth_headers(other_shop_id),
        )
        assert response.status_code == 200
        assert response.json()["defaulter_insights"]["risk_level"] == "Low Risk"

        response = await client.get(
            "/reports/global-search", params={"aadhar_no": "000011112222"}, headers=auth_headers(other_shop_id)
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "No customer found with this Aadhar number"

    @pytest.mark.asyncio
    async def test_dashboard_and_summaries(self, client, shop_id, customer_id, auth_headers):
        headers = auth_headers(shop_id)
        await client.post("/credits/", json={"customer_id": customer_id, "amount": "1500"}, headers=headers)

        response = await client.get("/reports/dashboard", headers=headers)
        assert response.status_code == 200
        assert response.json()["totals"]["total_outstanding"] == 1500.0

        response = await client.get("/reports/customers-summary", headers=headers)
        assert response.json()[0]["status"] == "pending"

        response = await client.get("/reports/outstanding", headers=headers)
        assert response.json()[0]["outstanding"] == 1500.0

    @pytest.mark.asyncio
    async def test_admin_stats(self, client, admin_id, shop_id, auth_headers):
        response = await client.get("/admin/stats", headers=auth_headers(admin_id))
        assert response.status_code == 200
        assert response.json()["total_shop_owners"] == 2

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        response = await client.get("/health_check/")
        assert response.json()["status"] == "healthy"
