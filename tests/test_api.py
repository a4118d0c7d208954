import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_redis
from app.db.models import BookingOtp
from app.db.session import get_session, get_session_factory
from app.main import app

from conftest import next_weekday


@pytest_asyncio.fixture
async def client(session_factory, redis):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_redis] = lambda: redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_booking_flow(client, session_factory):
    # 1. Hospital and doctor get PD numbers
    hospital_res = await client.post("/api/v1/hospitals/", json={
        "name": "Lakeview Hospital",
        "latitude": 12.9716,
        "longitude": 77.5946,
    })
    assert hospital_res.status_code == 200
    hospital = hospital_res.json()
    assert hospital["pd_number"] == "HL1"

    doctor_res = await client.post("/api/v1/doctors/", json={"name": "Dr. Meera Iyer"})
    assert doctor_res.status_code == 200
    doctor = doctor_res.json()
    assert doctor["pd_number"] == "DR1"

    # 2. Weekly schedule, confirmed for one date
    token_date = next_weekday(2)
    schedule_res = await client.post(f"/api/v1/doctors/{doctor['id']}/schedules", json={
        "hospital_id": hospital["id"],
        "day_of_week": 2,
        "start_time": "10:00",
        "end_time": "12:00",
        "tokens": [{"number": 1, "type": "NORMAL", "time": "10:00"}],
    })
    assert schedule_res.status_code == 200
    schedule = schedule_res.json()

    confirm_res = await client.post(
        f"/api/v1/doctors/{doctor['id']}/schedules/{schedule['id']}/confirm",
        json={"token_date": token_date.isoformat()},
    )
    assert confirm_res.status_code == 200
    table = confirm_res.json()
    assert [t["status"] for t in table["tokens"]] == ["OPEN"]

    # 3. Block, then a second block conflicts
    block = {
        "doctor_id": doctor["id"],
        "schedule_id": schedule["id"],
        "token_date": token_date.isoformat(),
        "token_number": 1,
    }
    block_res = await client.post("/api/v1/tokens/block", json=block)
    assert block_res.status_code == 200
    assert block_res.json()["success"] is True

    again_res = await client.post("/api/v1/tokens/block", json=block)
    assert again_res.status_code == 409
    assert again_res.json() == {
        "success": False,
        "message": "Selected token has been blocked by someone. Please try again after sometime.",
    }

    # 4. Book and verify with the OTP
    booking_res = await client.post("/api/v1/bookings/", json={**block, "user_id": "user-1"})
    assert booking_res.status_code == 200
    booking_id = booking_res.json()["booking_id"]

    async with session_factory() as session:
        otp = (await session.get(BookingOtp, booking_id)).otp

    wrong_res = await client.post(f"/api/v1/bookings/{booking_id}/verify-otp", json={"otp": "0000"})
    assert wrong_res.status_code == 422
    assert wrong_res.json()["message"] == "Incorrect OTP entered."

    verify_res = await client.post(f"/api/v1/bookings/{booking_id}/verify-otp", json={"otp": str(otp)})
    assert verify_res.status_code == 200
    assert verify_res.json()["success"] is True

    status_res = await client.get(f"/api/v1/bookings/{booking_id}/status")
    assert status_res.json()["status"] == "VISITED"

    cancel_res = await client.post(f"/api/v1/bookings/{booking_id}/cancel")
    assert cancel_res.status_code == 409

    # 5. Scores are computed in the background
    run_res = await client.post("/api/v1/scoring/run")
    assert run_res.status_code == 202

    scores_res = await client.get(f"/api/v1/scoring/{doctor['id']}")
    assert scores_res.status_code == 200
    assert scores_res.json()["trust"] == 1


@pytest.mark.asyncio
async def test_unknown_booking_is_404(client):
    response = await client.post("/api/v1/bookings/424242/cancel")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Booking not found"}


@pytest.mark.asyncio
async def test_block_day_endpoint(client, doctor, schedule, token_date, token_table):
    response = await client.post(f"/api/v1/token-tables/{token_table.id}/block-day")

    assert response.status_code == 200
    assert response.json()["closed_tokens"] == 3


@pytest.mark.asyncio
async def test_availability_endpoint(client, doctor, token_table, token_date):
    response = await client.get(
        f"/api/v1/doctors/{doctor.id}/availability",
        params={"at": f"{token_date.isoformat()}T08:30:00"},
    )

    assert response.status_code == 200
    assert response.json()[0]["is_booking_open"] is True
