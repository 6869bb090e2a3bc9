"""
Parcel booking and visibility tests.
"""

import pytest

from backend.app.models.parcel import Parcel
from backend.app.models.payment import PaymentRecord

PARCEL = {
    "name": "Documents",
    "parcel_type": "document",
    "cost": 15.0,
    "receiver_name": "Rahim",
    "receiver_region": "Dhaka",
}


@pytest.mark.asyncio
async def test_create_parcel_is_unpaid(client, headers_for):
    body = {**PARCEL, "payment_status": "paid", "tracking_id": "DD-20260101-FFFFFF", "sender_email": "x@test.com"}

    response = await client.post("/v1/parcels", json=body, headers=headers_for("sender@test.com"))

    assert response.status_code == 201
    data = response.json()
    assert data["sender_email"] == "sender@test.com"
    assert data["payment_status"] == "unpaid"
    assert data["tracking_id"] is None


@pytest.mark.asyncio
async def test_create_parcel_validates_cost(client, headers_for):
    response = await client.post("/v1/parcels", json={**PARCEL, "cost": 0}, headers=headers_for("sender@test.com"))

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_list_only_own_parcels(client, create_parcel, headers_for):
    await create_parcel(sender_email="sender@test.com")
    await create_parcel(sender_email="other@test.com")

    response = await client.get("/v1/parcels", headers=headers_for("sender@test.com"))

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["parcels"][0]["sender_email"] == "sender@test.com"


@pytest.mark.asyncio
async def test_list_other_senders_parcels_is_forbidden(client, create_parcel, headers_for, admin_headers):
    await create_parcel(sender_email="other@test.com")

    response = await client.get("/v1/parcels?email=other@test.com", headers=headers_for("sender@test.com"))
    assert response.status_code == 403

    response = await client.get("/v1/parcels?email=other@test.com", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_get_parcel_ownership(client, create_parcel, headers_for):
    parcel = await create_parcel(sender_email="sender@test.com")

    own = await client.get(f"/v1/parcels/{parcel.id}", headers=headers_for("sender@test.com"))
    foreign = await client.get(f"/v1/parcels/{parcel.id}", headers=headers_for("other@test.com"))
    missing = await client.get("/v1/parcels/999", headers=headers_for("sender@test.com"))

    assert own.status_code == 200
    assert foreign.status_code == 403
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_delete_paid_parcel_keeps_payment(client, create_parcel, headers_for, payment_provider, session_factory):
    parcel = await create_parcel()
    payment_provider.add_session("sess_1", parcel.id, payment_intent_id="pi_1")
    headers = headers_for("sender@test.com")
    await client.patch("/v1/payments/payment-success?session_id=sess_1", headers=headers)

    response = await client.delete(f"/v1/parcels/{parcel.id}", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"deleted": True, "parcel_id": parcel.id}
    async with session_factory() as session:
        assert await session.get(Parcel, parcel.id) is None
        payments = (await session.execute(PaymentRecord.__table__.select())).all()
        assert len(payments) == 1
        assert payments[0].parcel_id is None


@pytest.mark.asyncio
async def test_delete_foreign_parcel_is_forbidden(client, create_parcel, headers_for, session_factory):
    parcel = await create_parcel(sender_email="sender@test.com")

    response = await client.delete(f"/v1/parcels/{parcel.id}", headers=headers_for("other@test.com"))

    assert response.status_code == 403
    async with session_factory() as session:
        assert await session.get(Parcel, parcel.id) is not None
