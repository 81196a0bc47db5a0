"""
HTTP level tests for the v1 API.
"""

from xml.etree import ElementTree

import msgpack
import pytest

from openmensa.api.formats import header_name, to_xml
from openmensa.core.roles import Role


class TestHeaders:
    @pytest.mark.parametrize(
        "key,expected",
        [
            ("api_version", "X-OM-Api-Version"),
            ("version", "X-OM-Version"),
            ("page count", "X-OM-Page-Count"),
            ("api_v2", "X-OM-Api-V"),
        ],
    )
    def test_header_name(self, key, expected):
        assert header_name(key) == expected

    def test_api_version_on_success(self, http, seed):
        _, headers = seed.admin()
        response = http.get("/api/v1/users.json", headers=headers)
        assert response.status_code == 200
        assert response.headers["X-OM-Api-Version"] == "1"

    def test_api_version_on_error(self, http):
        response = http.get("/api/v1/users.json")
        assert response.headers["X-OM-Api-Version"] == "1"


class TestAccessDenied:
    def test_anonymous_gets_401(self, http):
        response = http.get("/api/v1/users.json")
        assert response.status_code == 401
        assert response.json()["error"] == "access_denied"

    def test_regular_user_gets_403(self, http, seed):
        _, headers = seed.user()
        response = http.get("/api/v1/users.json", headers=headers)
        assert response.status_code == 403

    def test_garbage_token_is_anonymous(self, http):
        response = http.get("/api/v1/users.json", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_read_scope_cannot_create(self, http, seed):
        _, headers = seed.admin(scope="read")
        assert http.get("/api/v1/users.json", headers=headers).status_code == 200
        response = http.post("/api/v1/users.json", headers=headers, json={"login": "x", "name": "X"})
        assert response.status_code == 403


class TestFormats:
    def test_unsupported_format(self, http, seed):
        _, headers = seed.admin()
        response = http.get("/api/v1/users.html", headers=headers)
        assert response.status_code == 406
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["message"] == "Unsupported format."

    def test_xml(self, http, seed):
        admin, headers = seed.admin()
        response = http.get(f"/api/v1/users/{admin.id}.xml", headers=headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        root = ElementTree.fromstring(response.content)
        assert root.tag == "user"
        assert root.find("login").text == admin.login
        assert root.find("admin").text == "true"

    def test_msgpack(self, http, seed):
        admin, headers = seed.admin()
        response = http.get(f"/api/v1/users/{admin.id}.msgpack", headers=headers)
        assert response.status_code == 200
        assert msgpack.unpackb(response.content)["login"] == admin.login

    def test_errors_follow_requested_format(self, http):
        response = http.get("/api/v1/users.xml")
        assert response.status_code == 401
        assert ElementTree.fromstring(response.content).tag == "error"

    def test_malformed_body_follows_requested_format(self, http, seed):
        _, headers = seed.admin()
        response = http.post("/api/v1/users.xml", headers=headers, json=["login", "heinz"])
        assert response.status_code == 422
        assert response.headers["X-OM-Api-Version"] == "1"
        root = ElementTree.fromstring(response.content)
        assert root.tag == "error"
        assert root.find("error").text == "unprocessable_entity"

    def test_malformed_query_follows_requested_format(self, http, seed):
        _, headers = seed.user()
        response = http.get("/api/v1/meals.msgpack?date=bogus", headers=headers)
        assert response.status_code == 422
        assert response.headers["X-OM-Api-Version"] == "1"
        body = msgpack.unpackb(response.content)
        assert [f["field"] for f in body["fields"]] == ["date"]

    def test_xml_lists_and_nil(self):
        root = ElementTree.fromstring(to_xml({"meals": [{"name": "Soup", "description": None}]}, "day"))
        meals = root.find("meals")
        assert meals.get("type") == "array"
        meal = meals.find("meal")
        assert meal.find("name").text == "Soup"
        assert meal.find("description").get("nil") == "true"


class TestUsers:
    def test_admin_creates_user(self, http, seed):
        _, headers = seed.admin()
        response = http.post(
            "/api/v1/users.json",
            headers=headers,
            json={"login": "heinz", "name": "Heinz", "admin": True},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["login"] == "heinz"
        assert body["admin"] is True

    def test_validation_errors(self, http, seed):
        _, headers = seed.admin()
        response = http.post(
            "/api/v1/users.json",
            headers=headers,
            json={"login": "not valid!", "name": "", "email": "nope"},
        )
        assert response.status_code == 422
        fields = {f["field"] for f in response.json()["fields"]}
        assert fields == {"login", "name", "email"}

    def test_duplicate_login(self, http, seed):
        user, headers = seed.admin()
        response = http.post(
            "/api/v1/users.json", headers=headers, json={"login": user.login, "name": "Copy"}
        )
        assert response.status_code == 422

    def test_user_sees_himself(self, http, seed):
        user, headers = seed.user()
        response = http.get(f"/api/v1/users/{user.id}.json", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == user.id

    def test_user_cannot_see_others(self, http, seed):
        other, _ = seed.user()
        _, headers = seed.user()
        assert http.get(f"/api/v1/users/{other.id}.json", headers=headers).status_code == 403

    def test_not_found(self, http, seed):
        _, headers = seed.admin()
        response = http.get("/api/v1/users/user_missing.json", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_null_time_zone_is_rejected(self, http, seed):
        user, _ = seed.user()
        _, headers = seed.admin()
        response = http.patch(f"/api/v1/users/{user.id}.json", headers=headers, json={"time_zone": None})
        assert response.status_code == 422
        assert [f["field"] for f in response.json()["fields"]] == ["time_zone"]
        assert http.get("/api/v1/users.json", headers=headers).status_code == 200

    def test_non_string_login_is_rejected(self, http, seed):
        _, headers = seed.admin()
        response = http.post("/api/v1/users.json", headers=headers, json={"login": 123, "name": "X"})
        assert response.status_code == 422
        assert {f["field"] for f in response.json()["fields"]} == {"login"}

    @pytest.mark.parametrize("flag", ["false", "0", 0])
    def test_admin_flag_must_be_boolean(self, http, seed, flag):
        _, headers = seed.admin()
        response = http.post(
            "/api/v1/users.json", headers=headers, json={"login": "plain", "name": "Plain", "admin": flag}
        )
        assert response.status_code == 422
        assert {f["field"] for f in response.json()["fields"]} == {"admin"}

    def test_admin_flag_false(self, http, seed):
        _, headers = seed.admin()
        response = http.post(
            "/api/v1/users.json", headers=headers, json={"login": "plain", "name": "Plain", "admin": False}
        )
        assert response.status_code == 201
        assert response.json()["admin"] is False

    def test_missing_user_hidden_from_anonymous(self, http):
        assert http.get("/api/v1/users/user_missing.json").status_code == 401
        assert http.delete("/api/v1/users/user_missing.json").status_code == 401

    def test_missing_user_hidden_from_regular_user(self, http, seed):
        _, headers = seed.user()
        assert http.get("/api/v1/users/user_missing.json", headers=headers).status_code == 403

    def test_admin_updates_user(self, http, seed):
        user, _ = seed.user()
        _, headers = seed.admin()
        response = http.patch(
            f"/api/v1/users/{user.id}.json", headers=headers, json={"name": "Renamed", "admin": True}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["role"] == Role.ADMIN.value

    def test_user_cannot_update_others(self, http, seed):
        other, _ = seed.user()
        _, headers = seed.user()
        response = http.patch(f"/api/v1/users/{other.id}.json", headers=headers, json={"name": "X"})
        assert response.status_code == 403

    def test_admin_destroys_user(self, http, seed):
        user, _ = seed.user()
        _, headers = seed.admin()
        assert http.delete(f"/api/v1/users/{user.id}.json", headers=headers).status_code == 200
        assert http.get(f"/api/v1/users/{user.id}.json", headers=headers).status_code == 404

    def test_admin_cannot_destroy_admin(self, http, seed):
        other, _ = seed.admin()
        _, headers = seed.admin()
        assert http.delete(f"/api/v1/users/{other.id}.json", headers=headers).status_code == 403

    def test_destroyed_users_token_stops_working(self, http, seed):
        user, user_headers = seed.user()
        _, headers = seed.admin()
        http.delete(f"/api/v1/users/{user.id}.json", headers=headers)
        response = http.get(f"/api/v1/users/{user.id}.json", headers=user_headers)
        assert response.status_code == 401


class TestMe:
    def test_anonymous(self, http):
        response = http.get("/api/v1/me.json")
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "anonymous"
        assert body["user"]["login"] == "anonymous"
        assert body["client"] is None

    def test_with_token_and_client(self, http, seed):
        client = seed.client("Mensa Android")
        user, headers = seed.user(client=client)
        body = http.get("/api/v1/me.json", headers=headers).json()
        assert body["user"]["id"] == user.id
        assert body["client"] == {"id": client.id, "name": "Mensa Android"}

    def test_locale_from_accept_language(self, http, seed):
        _, headers = seed.admin()
        response = http.post(
            "/api/v1/users.json",
            headers={**headers, "Accept-Language": "en-US,en;q=0.8"},
            json={"login": "english", "name": "English"},
        )
        assert response.json()["language"] == "en"


class TestMeals:
    def meal(self, **overrides):
        return {
            "cafeteria_id": "mensa-1",
            "date": "2026-10-19",
            "name": "Kartoffelsuppe",
            "category": "Suppe",
            "prices": {"students": 1.5},
            **overrides,
        }

    def test_admin_adds_and_users_read(self, http, seed):
        _, admin_headers = seed.admin()
        created = http.post("/api/v1/meals.json", headers=admin_headers, json=self.meal())
        assert created.status_code == 201
        meal_id = created.json()["id"]

        _, headers = seed.user()
        listed = http.get("/api/v1/meals.json?cafeteria_id=mensa-1&date=2026-10-19", headers=headers)
        assert [m["id"] for m in listed.json()] == [meal_id]
        shown = http.get(f"/api/v1/meals/{meal_id}.json", headers=headers)
        assert shown.json()["prices"] == {"students": 1.5}

    def test_other_day_is_empty(self, http, seed):
        _, headers = seed.admin()
        http.post("/api/v1/meals.json", headers=headers, json=self.meal())
        listed = http.get("/api/v1/meals.json?date=2026-10-20", headers=headers)
        assert listed.json() == []

    def test_anonymous_cannot_read(self, http):
        assert http.get("/api/v1/meals.json").status_code == 401

    def test_user_cannot_add(self, http, seed):
        _, headers = seed.user()
        assert http.post("/api/v1/meals.json", headers=headers, json=self.meal()).status_code == 403

    def test_invalid_meal(self, http, seed):
        _, headers = seed.admin()
        response = http.post("/api/v1/meals.json", headers=headers, json=self.meal(name="", date=""))
        assert response.status_code == 422
        assert {f["field"] for f in response.json()["fields"]} == {"name", "date"}

    def test_destroy(self, http, seed):
        _, headers = seed.admin()
        meal_id = http.post("/api/v1/meals.json", headers=headers, json=self.meal()).json()["id"]
        assert http.delete(f"/api/v1/meals/{meal_id}.json", headers=headers).status_code == 200
        assert http.get(f"/api/v1/meals/{meal_id}.json", headers=headers).status_code == 404


class TestHealth:
    def test_health(self, http):
        assert http.get("/health").json()["status"] == "ok"
