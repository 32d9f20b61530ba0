"""End-to-end checks through the HTTP layer."""

from beanie import PydanticObjectId
from pymongo.errors import PyMongoError

from curequeue.constants import Role
from curequeue.models import Appointment, User

from .conftest import TODAY


async def book(client, headers, doctor, date=TODAY, reason="Fever"):
    return await client.post(
        "/appointments",
        json={"doctorId": str(doctor.id), "date": date, "reason": reason},
        headers=headers,
    )


class TestAuth:
    async def test_register_then_login(self, client):
        resp = await client.post(
            "/auth/register",
            json={"name": "Meera", "email": "Meera@Example.com", "password": "secret123", "phone": "9000000000"},
        )
        assert resp.status_code == 201
        assert resp.json()["user"]["email"] == "meera@example.com"
        assert resp.json()["user"]["role"] == "patient"

        resp = await client.post("/auth/login", json={"email": "meera@example.com", "password": "secret123"})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        resp = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.json()["user"]["name"] == "Meera"

    async def test_duplicate_email(self, client, patient):
        resp = await client.post(
            "/auth/register",
            json={"name": "Again", "email": patient.email.upper(), "password": "secret123"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"msg": "Email already registered"}

    async def test_admin_cannot_self_register(self, client):
        resp = await client.post(
            "/auth/register",
            json={"name": "Boss", "email": "boss@example.com", "password": "secret123", "role": "admin"},
        )
        assert resp.status_code == 400

    async def test_wrong_password(self, client, patient):
        resp = await client.post("/auth/login", json={"email": patient.email, "password": "nope"})
        assert resp.status_code == 400
        assert resp.json() == {"msg": "Invalid credentials"}

    async def test_missing_token(self, client):
        resp = await client.get("/appointments/me")
        assert resp.status_code == 401
        assert "msg" in resp.json()

    async def test_bad_token(self, client):
        resp = await client.get("/appointments/me", headers={"Authorization": "Bearer junk"})
        assert resp.status_code == 401
        assert resp.json() == {"msg": "Token is not valid"}

    async def test_update_profile(self, client, patient, headers_for):
        resp = await client.put(
            "/auth/profile",
            json={"name": "Ravi K", "email": " Ravi.New@Example.com ", "phone": "9000000001"},
            headers=headers_for(patient),
        )
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert (user["name"], user["email"], user["phone"]) == ("Ravi K", "ravi.new@example.com", "9000000001")

        resp = await client.post("/auth/login", json={"email": "ravi.new@example.com", "password": "secret123"})
        assert resp.status_code == 200

    async def test_update_profile_keeps_omitted_fields(self, client, patient, headers_for):
        resp = await client.put("/auth/profile", json={"address": "4 Park Street"}, headers=headers_for(patient))
        user = resp.json()["user"]
        assert user["address"] == "4 Park Street"
        assert user["name"] == "Ravi Kumar"
        assert user["email"] == patient.email

    async def test_update_profile_email_taken(self, client, patient, make_user, headers_for):
        other = await make_user(Role.PATIENT)

        resp = await client.put("/auth/profile", json={"email": other.email.upper()}, headers=headers_for(patient))
        assert resp.status_code == 400
        assert resp.json() == {"msg": "Email already in use"}
        assert (await User.get(patient.id)).email == patient.email

    async def test_update_profile_same_email(self, client, patient, headers_for):
        resp = await client.put("/auth/profile", json={"email": patient.email}, headers=headers_for(patient))
        assert resp.status_code == 200


class TestAppointmentRoutes:
    async def test_book(self, client, patient, doctor, headers_for):
        resp = await book(client, headers_for(patient), doctor)

        assert resp.status_code == 201
        body = resp.json()
        assert body["appointmentTime"] == "10:00"
        assert body["waitingTime"] == 0
        assert body["appointment"]["token"] == 1
        assert body["appointment"]["status"] == "confirmed"
        assert body["appointment"]["doctorName"] == "Asha Rao"
        assert body["appointment"]["patientName"] == "Ravi Kumar"

    async def test_book_without_doctor(self, client, patient, headers_for):
        resp = await client.post("/appointments", json={"date": TODAY}, headers=headers_for(patient))
        assert resp.status_code == 400
        assert resp.json() == {"msg": "Doctor and appointment date are required"}

    async def test_book_malformed_doctor_id(self, client, patient, headers_for):
        resp = await client.post(
            "/appointments", json={"doctorId": "not-an-id", "date": TODAY}, headers=headers_for(patient)
        )
        assert resp.status_code == 400

    async def test_complete_by_other_doctor(self, client, patient, doctor, make_user, headers_for):
        appt_id = (await book(client, headers_for(patient), doctor)).json()["appointment"]["id"]
        stranger = await make_user(Role.DOCTOR)

        resp = await client.patch(f"/appointments/{appt_id}/complete", headers=headers_for(stranger))
        assert resp.status_code == 403
        assert resp.json() == {"msg": "Access denied"}

        resp = await client.patch(f"/appointments/{appt_id}/complete", headers=headers_for(doctor))
        assert resp.status_code == 200
        assert resp.json()["appointment"]["status"] == "completed"

    async def test_patient_cannot_complete(self, client, patient, doctor, headers_for):
        appt_id = (await book(client, headers_for(patient), doctor)).json()["appointment"]["id"]
        resp = await client.patch(f"/appointments/{appt_id}/complete", headers=headers_for(patient))
        assert resp.status_code == 403

    async def test_waiting_time(self, client, patient, doctor, headers_for):
        appt_id = (await book(client, headers_for(patient), doctor)).json()["appointment"]["id"]

        resp = await client.post(
            f"/appointments/{appt_id}/waiting-time", json={"waitingTime": -5}, headers=headers_for(doctor)
        )
        assert resp.status_code == 400

        resp = await client.post(
            f"/appointments/{appt_id}/waiting-time", json={"waitingTime": 25}, headers=headers_for(doctor)
        )
        assert resp.status_code == 200
        assert resp.json()["appointment"]["waitingTime"] == 25

    async def test_cancel_and_list_own(self, client, patient, doctor, headers_for):
        appt_id = (await book(client, headers_for(patient), doctor)).json()["appointment"]["id"]

        resp = await client.patch(f"/appointments/{appt_id}/cancel", headers=headers_for(patient))
        assert resp.status_code == 200
        assert resp.json()["appointment"]["cancelledBy"] == "patient"

        resp = await client.patch(f"/appointments/{appt_id}/cancel", headers=headers_for(patient))
        assert resp.status_code == 400

        mine = (await client.get("/appointments/me", headers=headers_for(patient))).json()
        assert [a["status"] for a in mine] == ["cancelled"]

    async def test_doctor_cannot_book_online(self, client, doctor, headers_for):
        resp = await book(client, headers_for(doctor), doctor)
        assert resp.status_code == 403
        assert await Appointment.find_all().count() == 0

    async def test_store_failure_on_booking(self, client, patient, doctor, headers_for, monkeypatch, sent_emails):
        async def failing_insert(self, *args, **kwargs):
            raise PyMongoError("connection refused: mongo-0.internal:27017")

        monkeypatch.setattr(Appointment, "insert", failing_insert)

        resp = await book(client, headers_for(patient), doctor)

        assert resp.status_code == 500
        assert resp.json() == {"msg": "Server error while booking appointment"}
        assert "mongo-0.internal" not in resp.text
        assert await Appointment.find_all().count() == 0
        assert sent_emails == []

    async def test_store_failure_on_cancel(self, client, patient, doctor, headers_for, monkeypatch):
        appt_id = (await book(client, headers_for(patient), doctor)).json()["appointment"]["id"]

        async def failing_save(self, *args, **kwargs):
            raise PyMongoError("connection refused: mongo-0.internal:27017")

        monkeypatch.setattr(Appointment, "save", failing_save)

        resp = await client.patch(f"/appointments/{appt_id}/cancel", headers=headers_for(patient))

        assert resp.status_code == 500
        assert resp.json() == {"msg": "Server error"}
        stored = await Appointment.get(PydanticObjectId(appt_id))
        assert stored.status == "confirmed"
        assert stored.cancelled_by is None

    async def test_unknown_appointment(self, client, doctor, headers_for):
        resp = await client.patch(
            "/appointments/65a000000000000000000000/complete", headers=headers_for(doctor)
        )
        assert resp.status_code == 404
        assert resp.json() == {"msg": "Appointment not found"}

    async def test_offline_booking(self, client, doctor, patient, headers_for):
        resp = await client.post(
            "/appointments/offline",
            json={"patientName": "Walk In", "phone": "9111111111"},
            headers=headers_for(doctor),
        )
        assert resp.status_code == 201
        assert resp.json()["appointment"]["isOffline"] is True
        assert resp.json()["appointment"]["patientName"] == "Walk In"

        resp = await client.post(
            "/appointments/offline", json={"patientName": "Walk In"}, headers=headers_for(patient)
        )
        assert resp.status_code == 403


class TestDoctorRoutes:
    async def test_queue_in_token_order(self, client, doctor, make_user, headers_for):
        for _ in range(3):
            p = await make_user(Role.PATIENT)
            await book(client, headers_for(p), doctor)

        resp = await client.get("/doctor/appointments", headers=headers_for(doctor))
        assert resp.status_code == 200
        body = resp.json()
        assert body["date"] == TODAY
        assert [a["token"] for a in body["appointments"]] == [1, 2, 3]
        assert [a["waitingTime"] for a in body["appointments"]] == [0, 5, 10]

    async def test_queue_for_other_day_is_empty(self, client, doctor, patient, headers_for):
        await book(client, headers_for(patient), doctor)
        resp = await client.get("/doctor/appointments", params={"date": "2025-01-16"}, headers=headers_for(doctor))
        assert resp.json()["appointments"] == []

    async def test_admin_needs_doctor_id(self, client, admin, doctor, headers_for):
        resp = await client.get("/doctor/appointments", headers=headers_for(admin))
        assert resp.status_code == 400

        resp = await client.get(
            "/doctor/appointments", params={"doctorId": str(doctor.id)}, headers=headers_for(admin)
        )
        assert resp.status_code == 200

    async def test_patient_cannot_see_queue(self, client, patient, headers_for):
        resp = await client.get("/doctor/appointments", headers=headers_for(patient))
        assert resp.status_code == 403

    async def test_ratings_are_public(self, client, doctor):
        resp = await client.get("/doctor/ratings")
        assert resp.status_code == 200
        [row] = resp.json()["doctors"]
        assert set(row) == {"id", "name", "email", "averageRating", "totalReviews", "homeVisitFee"}
        assert row["name"] == "Asha Rao"
        assert row["averageRating"] is None
        assert row["totalReviews"] == 0

    async def test_home_visit_fee(self, client, doctor, headers_for):
        resp = await client.patch("/doctor/home-visit-fee", json={"homeVisitFee": 500}, headers=headers_for(doctor))
        assert resp.status_code == 200
        assert resp.json()["homeVisitFee"] == 500

        resp = await client.patch("/doctor/home-visit-fee", json={"homeVisitFee": -1}, headers=headers_for(doctor))
        assert resp.status_code == 400


class TestHomeVisitRoutes:
    async def test_request_accept_complete(self, client, patient, doctor, headers_for):
        resp = await client.post(
            "/home-visits",
            json={
                "doctorId": str(doctor.id),
                "address": "12 MG Road, Pune",
                "reason": "Elderly parent, cannot travel",
                "date": "2025-01-18T10:00:00Z",
                "location": {"latitude": 18.52, "longitude": 73.85},
            },
            headers=headers_for(patient),
        )
        assert resp.status_code == 201
        visit_id = resp.json()["request"]["id"]
        assert resp.json()["request"]["status"] == "Pending"

        resp = await client.put(f"/home-visits/{visit_id}/complete", headers=headers_for(doctor))
        assert resp.status_code == 400

        resp = await client.put(f"/home-visits/{visit_id}/accept", headers=headers_for(doctor))
        assert resp.json()["request"]["status"] == "Accepted"

        resp = await client.put(f"/home-visits/{visit_id}/complete", headers=headers_for(doctor))
        assert resp.json()["request"]["status"] == "Completed"

        resp = await client.put(f"/home-visits/{visit_id}/cancel", headers=headers_for(patient))
        assert resp.status_code == 400
        assert resp.json() == {"msg": "Cannot cancel a completed visit"}

    async def test_missing_fields(self, client, patient, doctor, headers_for):
        resp = await client.post("/home-visits", json={"doctorId": str(doctor.id)}, headers=headers_for(patient))
        assert resp.status_code == 400
        assert resp.json() == {"msg": "Missing required fields"}

    async def test_listing_permissions(self, client, patient, doctor, admin, make_user, headers_for):
        other = await make_user(Role.PATIENT)

        resp = await client.get(f"/home-visits/patient/{patient.id}", headers=headers_for(other))
        assert resp.status_code == 403
        resp = await client.get(f"/home-visits/patient/{patient.id}", headers=headers_for(patient))
        assert resp.json() == {"requests": []}
        resp = await client.get("/home-visits", headers=headers_for(doctor))
        assert resp.status_code == 403
        resp = await client.get("/home-visits", headers=headers_for(admin))
        assert resp.status_code == 200


class TestReviewRoutes:
    async def test_review_once(self, client, patient, doctor, headers_for):
        appt = (await book(client, headers_for(patient), doctor)).json()["appointment"]
        payload = {"appointmentId": appt["id"], "doctorId": str(doctor.id), "rating": 5, "comment": "Great"}

        resp = await client.post("/reviews/add", json=payload, headers=headers_for(patient))
        assert resp.status_code == 201

        resp = await client.post("/reviews/add", json=payload, headers=headers_for(patient))
        assert resp.status_code == 400
        assert resp.json() == {"msg": "You have already reviewed this appointment"}

        resp = await client.get(f"/reviews/doctor/{doctor.id}", headers=headers_for(doctor))
        assert resp.json()["count"] == 1

        [row] = (await client.get("/doctor/ratings")).json()["doctors"]
        assert row["averageRating"] == 5.0


async def test_health(client):
    assert (await client.get("/healthz")).json() == {"status": "ok"}
