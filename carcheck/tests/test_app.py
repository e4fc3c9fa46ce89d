import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from carcheck.broadcast import BroadcastSender
from carcheck.dependencies import get_broadcast_sender, get_current_user, get_push_gateway
from carcheck.main import create_app
from carcheck.schemas.profile import Profile
from carcheck.supabase_client import create_device_client, get_supabase_client

from fakes import FakeSupabase


class ApiTestCase(unittest.TestCase):
    caller_id = "U1"
    caller_fields = {"role": "admin", "access": "full"}

    def setUp(self):
        self.db = FakeSupabase()
        self.gateway = MagicMock()
        self.caller = self.db.seed_profile(self.caller_id, full_name="Boss", **self.caller_fields)

        self.app = create_app()
        self.app.dependency_overrides[get_supabase_client] = lambda: self.db
        self.app.dependency_overrides[create_device_client] = lambda: self.db
        self.app.dependency_overrides[get_push_gateway] = lambda: self.gateway
        self.app.dependency_overrides[get_broadcast_sender] = lambda: BroadcastSender(
            self.db, self.gateway, batch_delay=0
        )
        self.app.dependency_overrides[get_current_user] = self.current_user
        self.client = TestClient(self.app)

    def current_user(self):
        row = next(r for r in self.db.rows("profiles") if r["id"] == self.caller_id)
        return Profile.model_validate(row)


class HealthTests(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})


class AuthApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.app.dependency_overrides.pop(get_current_user)
        self.db.auth.add_account("boss@x.com", "secret123", user_id="U1")

    def test_login_with_wrong_password_returns_arabic_message(self):
        response = self.client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrongpw"})

        self.assertEqual(response.status_code, 401)
        detail = response.json()["detail"]
        self.assertEqual(detail["error"], "Invalid login credentials")
        self.assertEqual(detail["message"], "بيانات الدخول غير صحيحة")

    def test_login_returns_tokens_and_profile(self):
        response = self.client.post("/api/auth/login", json={"email": "boss@x.com", "password": "secret123"})

        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["access_token"])
        self.assertEqual(payload["profile"]["access"], "full")

    def test_me_requires_bearer_token(self):
        self.assertEqual(self.client.get("/api/auth/me").status_code, 401)

    def test_me_with_valid_token(self):
        token = self.client.post(
            "/api/auth/login", json={"email": "boss@x.com", "password": "secret123"}
        ).json()["access_token"]

        response = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["email"], "boss@x.com")

    def test_update_me_only_accepts_self_editable_fields(self):
        token = self.client.post(
            "/api/auth/login", json={"email": "boss@x.com", "password": "secret123"}
        ).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        ok = self.client.patch("/api/auth/me", json={"full_name": "New"}, headers=headers)
        rejected = self.client.patch("/api/auth/me", json={"role": "user"}, headers=headers)

        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["full_name"], "New")
        self.assertEqual(rejected.status_code, 422)

    def test_logout_clears_push_token_and_revokes_token(self):
        token = self.client.post(
            "/api/auth/login", json={"email": "boss@x.com", "password": "secret123"}
        ).json()["access_token"]
        self.db.tables["profiles"][0].update({"expo_push_token": "tok", "notification_enabled": True})

        response = self.client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.db.rows("profiles")[0]["expo_push_token"])
        self.assertEqual(self.db.auth.admin.signed_out, [token])


class AdminApiTests(ApiTestCase):
    def test_toggle_access_twice_reverts(self):
        self.db.seed_profile("U2", role="admin", access="limit")

        first = self.client.post("/api/admin/admins/U2/toggle-access")
        second = self.client.post("/api/admin/admins/U2/toggle-access")

        self.assertEqual(first.json()["access"], "full")
        self.assertEqual(first.json()["message"], "تم منح الصلاحيات")
        self.assertEqual(second.json()["access"], "limit")

    def test_toggle_own_access_is_rejected(self):
        response = self.client.post("/api/admin/admins/U1/toggle-access")
        self.assertEqual(response.status_code, 400)

    def test_delete_self_is_rejected(self):
        response = self.client.delete("/api/admin/admins/U1")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "لا يمكنك حذف حسابك الخاص")

    def test_delete_other_admin_is_audited(self):
        self.db.seed_profile("U2", role="admin")

        response = self.client.delete("/api/admin/admins/U2")

        self.assertEqual(response.status_code, 200)
        self.assertEqual([r["id"] for r in self.db.rows("profiles")], ["U1"])
        self.assertEqual(self.db.rows("audit_logs")[0]["action"], "delete")

    def test_list_admins_excludes_caller(self):
        self.db.seed_profile("U2", role="admin")
        self.db.seed_profile("R1")

        response = self.client.get("/api/admin/admins")

        self.assertEqual([p["id"] for p in response.json()], ["U2"])

    def test_summary_counts(self):
        self.db.tables["requests"] = [
            {"id": "1", "from": "a", "to": "b", "time": "t", "phone": "0500000000", "status": "pending"},
            {"id": "2", "from": "a", "to": "b", "time": "t", "phone": "0500000000", "status": "done"},
            {"id": "3", "from": "a", "to": "b", "time": "t", "phone": "0500000000", "status": "pending"},
        ]

        stats = self.client.get("/api/admin/summary").json()

        self.assertEqual(stats["admin_users"], 1)
        self.assertEqual(stats["total_requests"], 3)
        self.assertEqual(stats["pending_requests"], 2)
        self.assertEqual(stats["completed_requests"], 1)
        self.assertEqual(stats["rejected_requests"], 0)

    def test_create_admin_account(self):
        response = self.client.post(
            "/api/admin/admins",
            json={"username": "ahmad", "email": "ahmad@x.com", "password": "secret123"},
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["role"], "admin")
        self.assertEqual(response.json()["access"], "limit")

    def test_create_admin_with_registered_email(self):
        self.db.auth.add_account("ahmad@x.com", "secret123")

        response = self.client.post(
            "/api/admin/admins",
            json={"username": "ahmad", "email": "ahmad@x.com", "password": "secret123"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "هذا البريد الإلكتروني مسجل بالفعل")


class LimitedAdminApiTests(ApiTestCase):
    caller_fields = {"role": "admin", "access": "limit"}

    def test_limited_admin_cannot_run_full_access_actions(self):
        self.db.seed_profile("U2", role="admin")

        self.assertEqual(self.client.delete("/api/admin/admins/U2").status_code, 403)
        self.assertEqual(self.client.post("/api/admin/admins/U2/toggle-access").status_code, 403)
        self.assertEqual(
            self.client.post("/api/notifications/broadcast", json={"title": "t", "body": "b"}).status_code,
            403,
        )
        self.assertEqual(len(self.db.rows("profiles")), 2)

    def test_limited_admin_can_list_requests(self):
        self.assertEqual(self.client.get("/api/requests/admin/all").status_code, 200)


class RiderApiTests(ApiTestCase):
    caller_fields = {"role": "user", "access": "limit"}

    def test_non_admin_is_forbidden(self):
        self.assertEqual(self.client.get("/api/admin/admins").status_code, 403)
        self.assertEqual(self.client.get("/api/requests/admin/all").status_code, 403)


class RequestsApiTests(ApiTestCase):
    def create_request(self):
        response = self.client.post(
            "/api/requests",
            json={"from": "Riyadh", "to": "Inspection center", "time": "10:00", "phone": "0500000000"},
        )
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_create_request_starts_pending_and_notifies(self):
        self.caller["expo_push_token"] = "tok"
        self.caller["notification_enabled"] = True

        created = self.create_request()

        self.assertEqual(created["status"], "pending")
        self.assertEqual(created["from"], "Riyadh")
        message = self.gateway.send.call_args.args[0]
        self.assertEqual(message["title"], "طلب جديد")

    def test_accept_then_reject_conflicts(self):
        created = self.create_request()

        accepted = self.client.patch(f"/api/requests/admin/{created['id']}/accept")
        rejected = self.client.patch(f"/api/requests/admin/{created['id']}/reject")

        self.assertEqual(accepted.status_code, 200)
        self.assertEqual(accepted.json()["status"], "processing")
        self.assertEqual(rejected.status_code, 409)

    def test_reject_pending_request(self):
        created = self.create_request()
        response = self.client.patch(f"/api/requests/admin/{created['id']}/reject")
        self.assertEqual(response.json()["status"], "rejected")

    def test_transition_of_missing_request(self):
        response = self.client.patch("/api/requests/admin/missing/accept")
        self.assertEqual(response.status_code, 404)

    def test_delete_request(self):
        created = self.create_request()

        response = self.client.delete(f"/api/requests/admin/{created['id']}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.db.rows("requests"), [])

    def test_list_newest_first(self):
        self.db.tables["requests"] = [
            {"id": "1", "from": "a", "to": "b", "time": "t", "phone": "0500000000", "status": "pending",
             "created_at": "2026-01-01T00:00:00+00:00"},
            {"id": "2", "from": "a", "to": "b", "time": "t", "phone": "0500000000", "status": "done",
             "created_at": "2026-02-01T00:00:00+00:00"},
        ]

        response = self.client.get("/api/requests/admin/all")

        self.assertEqual([r["id"] for r in response.json()], ["2", "1"])


class NotificationsApiTests(ApiTestCase):
    def test_register_and_disable_token(self):
        registered = self.client.post("/api/notifications/token", json={"token": "ExponentPushToken[abc]"})
        self.assertEqual(registered.status_code, 200)
        self.assertTrue(self.caller["notification_enabled"])

        disabled = self.client.delete("/api/notifications/token")
        self.assertEqual(disabled.status_code, 200)
        self.assertIsNone(self.caller["expo_push_token"])
        self.assertFalse(self.caller["notification_enabled"])

    def test_broadcast_with_no_recipients(self):
        response = self.client.post("/api/notifications/broadcast", json={"title": "t", "body": "b"})

        self.assertEqual(response.json(), {"sent": 0, "total": 0, "failed_batches": 0})
        self.gateway.send.assert_not_called()

    def test_broadcast_and_history(self):
        self.db.seed_profile("R1", expo_push_token="tok-1", notification_enabled=True)

        response = self.client.post("/api/notifications/broadcast", json={"title": "t", "body": "b"})
        history = self.client.get("/api/notifications/broadcasts").json()

        self.assertEqual(response.json()["sent"], 1)
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]["recipients_count"], 1)

    def test_test_notification_requires_token(self):
        self.assertEqual(self.client.post("/api/notifications/test").status_code, 400)


if __name__ == "__main__":
    unittest.main()
