import unittest

from fastapi.testclient import TestClient

from backend.app import create_app
from backend.config import Settings


class SlashInKeyFlow:
    """Users keyed by an email containing a slash stay reachable."""

    def test_user_with_slash_in_email_round_trip(self):
        response = self.client.post(
            "/users/add",
            data={"email": "a/b@x.com", "password": "pw"},
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303)
        detail_url = response.headers["location"]
        self.assertEqual(detail_url, "/users/a%2Fb@x.com")

        detail = self.client.get(detail_url)
        self.assertEqual(detail.status_code, 200)
        self.assertIn("a/b@x.com", detail.text)

        form = self.client.get(f"{detail_url}/edit")
        self.assertEqual(form.status_code, 200)
        self.assertIn('value="pw"', form.text)

        response = self.client.post(
            f"{detail_url}/edit", data={"password": "new"}, follow_redirects=False
        )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], detail_url)

        listing = self.client.get("/users")
        self.assertIn('href="/users/a/b%40x.com"', listing.text)
        self.assertEqual(self.client.get("/users/a/b%40x.com").status_code, 200)

        response = self.client.get(f"{detail_url}/delete", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "/users")
        self.assertEqual(self.client.get(detail_url).status_code, 404)


class BackendApiTests(SlashInKeyFlow, unittest.TestCase):
    def setUp(self):
        self.app = create_app(Settings(data_backend="memory", page_size=2))
        self.client = TestClient(self.app)

    def test_index_redirects_to_users(self):
        response = self.client.get("/", follow_redirects=False)
        self.assertIn(response.status_code, (302, 307))
        self.assertEqual(response.headers["location"], "/users")

    def test_trailing_slash_redirects_to_list(self):
        response = self.client.get("/users/", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "/users")

    def test_list_renders_html(self):
        response = self.client.get("/users")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/html"))
        self.assertIn("No users found", response.text)

    def test_add_user_redirects_to_detail(self):
        form = self.client.get("/users/add")
        self.assertEqual(form.status_code, 200)
        self.assertIn('name="email"', form.text)

        response = self.client.post(
            "/users/add",
            data={"email": "a@example.com", "password": "pw"},
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/users/a@example.com")

        detail = self.client.get("/users/a@example.com")
        self.assertEqual(detail.status_code, 200)
        self.assertIn("a@example.com", detail.text)

    def test_admin_edit_and_delete_flow(self):
        response = self.client.post(
            "/admins/add", data={"name": "A"}, follow_redirects=False
        )
        self.assertEqual(response.headers["location"], "/admins/1")

        form = self.client.get("/admins/1/edit")
        self.assertEqual(form.status_code, 200)
        self.assertIn('value="A"', form.text)

        response = self.client.post(
            "/admins/1/edit", data={"name": "B"}, follow_redirects=False
        )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/admins/1")
        self.assertEqual(self.app.state.models["admins"].read(1)["name"], "B")

        response = self.client.get("/admins/1/delete", follow_redirects=False)
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response.headers["location"], "/admins")

        missing = self.client.get("/admins/1")
        self.assertEqual(missing.status_code, 404)
        self.assertIn("Not found", missing.text)

    def test_delete_missing_still_redirects(self):
        response = self.client.get("/members/7/delete", follow_redirects=False)
        self.assertEqual(response.status_code, 302)

    def test_edit_missing_is_404(self):
        self.assertEqual(self.client.get("/members/7/edit").status_code, 404)
        response = self.client.post(
            "/members/7/edit", data={"groupId": "1"}, follow_redirects=False
        )
        self.assertEqual(response.status_code, 404)

    def test_blank_form_values_are_null(self):
        self.client.post(
            "/admins/add", data={"name": "A", "email": ""}, follow_redirects=False
        )
        self.assertIsNone(self.app.state.models["admins"].read(1)["email"])

    def test_list_pagination_links(self):
        users = self.app.state.models["users"]
        for email in ("a@example.com", "b@example.com", "c@example.com"):
            users.create({"email": email})

        first = self.client.get("/users")
        self.assertIn("pageToken=2", first.text)
        self.assertNotIn("c@example.com", first.text)

        second = self.client.get("/users", params={"pageToken": "2"})
        self.assertEqual(second.status_code, 200)
        self.assertIn("c@example.com", second.text)
        self.assertNotIn("pageToken=", second.text)

    def test_bad_page_token_is_store_error_page(self):
        response = self.client.get("/users", params={"pageToken": "abc"})
        self.assertEqual(response.status_code, 500)
        self.assertIn("Invalid page token", response.text)

    def test_unknown_field_is_store_error_page(self):
        response = self.client.post(
            "/admins/add", data={"bogus": "x"}, follow_redirects=False
        )
        self.assertEqual(response.status_code, 500)
        self.assertIn("/admins", response.text)

    def test_msgs_have_no_add_routes(self):
        self.assertEqual(self.client.get("/msgs/add").status_code, 404)
        self.assertEqual(
            self.client.post("/msgs/add", data={"content": "hi"}).status_code, 405
        )

    def test_msg_edit_flow(self):
        msgs = self.app.state.models["msgs"]
        created = msgs.create({"userEmail": "a@example.com", "content": "hi"})

        response = self.client.post(
            f"/msgs/{created['id']}/edit",
            data={"content": "hello"},
            follow_redirects=False,
        )
        self.assertEqual(response.headers["location"], f"/msgs/{created['id']}")
        detail = self.client.get(f"/msgs/{created['id']}")
        self.assertIn("hello", detail.text)
        self.assertEqual(msgs.read(created["id"])["userEmail"], "a@example.com")


class SqlBackendApiTests(SlashInKeyFlow, unittest.TestCase):
    def setUp(self):
        settings = Settings(
            data_backend="cloudsql",
            database_url="sqlite+pysqlite:///:memory:",
            create_schema_on_startup=True,
        )
        self.client = TestClient(create_app(settings))

    def test_member_round_trip(self):
        response = self.client.post(
            "/members/add",
            data={"groupId": "2", "userEmail": "a@example.com"},
            follow_redirects=False,
        )
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/members/1")

        detail = self.client.get("/members/1")
        self.assertEqual(detail.status_code, 200)
        self.assertIn("a@example.com", detail.text)

        listing = self.client.get("/members")
        self.assertIn('href="/members/1"', listing.text)


if __name__ == "__main__":
    unittest.main()
