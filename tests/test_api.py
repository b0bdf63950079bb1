import os
import tempfile
import unittest

from fastapi.testclient import TestClient
from slowapi.errors import RateLimitExceeded

from dam.core.constants import AuthErrorDetails
from dam.core.exceptions import AppException
from dam.main import create_app
from tests.support import make_settings

CREDENTIALS = {"email": "alice@example.com", "password": "correct horse"}


class ApiTestCase(unittest.TestCase):
    settings_overrides: dict = {}

    def setUp(self):
        self._upload_dir = tempfile.TemporaryDirectory()
        self.upload_dir = self._upload_dir.name
        settings = make_settings(UPLOAD_DIR=self.upload_dir, **self.settings_overrides)
        self.client = TestClient(create_app(settings))
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self._upload_dir.cleanup()

    def register(self, credentials=None):
        response = self.client.post("/api/auth/register", json=credentials or CREDENTIALS)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]["access_token"]

    def bearer(self, access_token):
        return {"Authorization": f"Bearer {access_token}"}

    def use_refresh_cookie(self, token):
        self.client.cookies.clear()
        self.client.cookies.set("refresh_token", token)


class TestAuthApi(ApiTestCase):
    def test_register_login_refresh_and_stale_refresh(self):
        self.register()
        self.assertIsNotNone(self.client.cookies.get("refresh_token"))

        response = self.client.post("/api/auth/login", json=CREDENTIALS)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertIn("access_token", body["data"])
        first_refresh = self.client.cookies.get("refresh_token")

        response = self.client.post("/api/auth/refresh")
        self.assertEqual(response.status_code, 200)
        second_refresh = self.client.cookies.get("refresh_token")
        self.assertNotEqual(first_refresh, second_refresh)

        self.use_refresh_cookie(first_refresh)
        response = self.client.post("/api/auth/refresh")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()["success"])
        self.assertEqual(response.json()["data"]["error"], "forbidden")

    def test_refresh_cookie_attributes(self):
        response = self.client.post("/api/auth/register", json=CREDENTIALS)

        cookie = response.headers["set-cookie"].lower()
        self.assertIn("refresh_token=", cookie)
        self.assertIn("httponly", cookie)
        self.assertIn("max-age=604800", cookie)

    def test_duplicate_registration(self):
        self.register()

        response = self.client.post("/api/auth/register", json=CREDENTIALS)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "User already exists")
        self.assertEqual(response.json()["data"]["error"], "conflict")

    def test_register_validation(self):
        response = self.client.post("/api/auth/register", json={"email": "not-an-email", "password": "x"})
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/auth/register", json={"email": "alice@example.com"})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["data"]["error"], "validation_error")
        self.assertEqual(body["data"]["validation_errors"][0]["field"], "password")

    def test_login_with_missing_field_is_bad_request(self):
        response = self.client.post("/api/auth/login", json={"email": "alice@example.com"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["data"]["error"], "validation_error")

    def test_login_failures_are_bad_requests(self):
        response = self.client.post("/api/auth/login", json=CREDENTIALS)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "User not found")

        self.register()
        response = self.client.post(
            "/api/auth/login", json={"email": CREDENTIALS["email"], "password": "wrong"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Incorrect password")

    def test_logout_then_refresh(self):
        self.register()
        token = self.client.cookies.get("refresh_token")

        response = self.client.post("/api/auth/logout")
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.client.cookies.get("refresh_token"))

        self.use_refresh_cookie(token)
        response = self.client.post("/api/auth/refresh")
        self.assertEqual(response.status_code, 403)

    def test_logout_without_cookie_clears_it_anyway(self):
        response = self.client.post("/api/auth/logout")

        self.assertEqual(response.status_code, 401)
        self.assertIn("refresh_token=", response.headers.get("set-cookie", ""))

    def test_logout_with_malformed_cookie(self):
        self.use_refresh_cookie("garbage")

        response = self.client.post("/api/auth/logout")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Refresh token is malformed")

    def test_refresh_without_cookie(self):
        response = self.client.post("/api/auth/refresh")
        self.assertEqual(response.status_code, 401)

    def test_me(self):
        access_token = self.register()

        response = self.client.get("/api/auth/me", headers=self.bearer(access_token))
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["email"], CREDENTIALS["email"])
        self.assertEqual(data["role"], "user")
        self.assertNotIn("password_hash", data)

    def test_me_requires_valid_bearer(self):
        response = self.client.get("/api/auth/me")
        self.assertEqual(response.status_code, 401)

        response = self.client.get("/api/auth/me", headers=self.bearer("not-a-jwt"))
        self.assertEqual(response.status_code, 403)


class TestRateLimits(ApiTestCase):
    settings_overrides = {"RATE_LIMIT_ENABLED": True, "LOGIN_RATE_LIMIT": "2/minute"}

    def test_login_is_rate_limited(self):
        for _ in range(2):
            response = self.client.post("/api/auth/login", json=CREDENTIALS)
            self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/auth/login", json=CREDENTIALS)
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()["data"], {"error": "rate_limited"})
        self.assertEqual(response.json()["message"], AuthErrorDetails.RATE_LIMIT_EXCEEDED_LOGIN)

    def test_only_application_handlers_are_registered(self):
        self.assertNotIn(RateLimitExceeded, self.client.app.exception_handlers)
        self.assertIn(AppException, self.client.app.exception_handlers)

    def test_limits_are_counted_per_endpoint(self):
        for _ in range(3):
            self.client.post("/api/auth/login", json=CREDENTIALS)

        response = self.client.post("/api/auth/refresh")
        self.assertEqual(response.status_code, 401)


class TestAssetsApi(ApiTestCase):
    settings_overrides = {"MAX_UPLOAD_SIZE_MB": 1}

    def setUp(self):
        super().setUp()
        self.headers = self.bearer(self.register())

    def upload(self, headers=None, content=b"\x89PNG fake image bytes", **form):
        return self.client.post(
            "/api/assets",
            headers=headers or self.headers,
            files={"file": ("Holiday Photo.png", content, "image/png")},
            data=form or {"description": "beach", "tags": "summer, beach,summer"},
        )

    def test_upload_list_get_delete(self):
        response = self.upload()
        self.assertEqual(response.status_code, 201, response.text)
        asset = response.json()["data"]
        self.assertEqual(asset["title"], "Holiday Photo.png")
        self.assertEqual(asset["file_type"], "image/png")
        self.assertEqual(asset["tags"], ["summer", "beach"])
        self.assertEqual(asset["status"], "active")
        self.assertIsNone(asset["thumbnail_url"])
        self.assertTrue(os.path.exists(asset["file_path"]))
        self.assertRegex(os.path.basename(asset["file_path"]), r"^Holiday_Photo-[0-9a-f]{32}\.png$")

        response = self.client.get("/api/assets", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual([a["id"] for a in response.json()["data"]], [asset["id"]])

        response = self.client.get(f"/api/assets/{asset['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)

        response = self.client.delete(f"/api/assets/{asset['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 200)

        response = self.client.get(f"/api/assets/{asset['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        response = self.client.delete(f"/api/assets/{asset['id']}", headers=self.headers)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.get("/api/assets", headers=self.headers).json()["data"], [])

    def test_assets_are_scoped_to_owner(self):
        asset = self.upload().json()["data"]
        other = self.bearer(self.register({"email": "bob@example.com", "password": "pw"}))

        self.assertEqual(self.client.get("/api/assets", headers=other).json()["data"], [])
        response = self.client.get(f"/api/assets/{asset['id']}", headers=other)
        self.assertEqual(response.status_code, 404)
        response = self.client.delete(f"/api/assets/{asset['id']}", headers=other)
        self.assertEqual(response.status_code, 404)

    def test_invalid_asset_id(self):
        response = self.client.get("/api/assets/not-an-id", headers=self.headers)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["data"]["error"], "validation_error")

    def test_upload_requires_file(self):
        response = self.client.post("/api/assets", headers=self.headers, data={"description": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "A file upload is required")

    def test_upload_size_limit(self):
        response = self.upload(content=b"x" * (1024 * 1024 + 1))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(os.listdir(self.upload_dir), [])

    def test_assets_require_authentication(self):
        response = self.client.get("/api/assets")
        self.assertEqual(response.status_code, 401)


class TestHealthApi(ApiTestCase):
    def test_health(self):
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["components"]["database"]["status"], "healthy")
        self.assertEqual(body["components"]["cache"]["status"], "healthy")

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.json()["data"], {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
