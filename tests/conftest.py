import pytest
from fastapi.testclient import TestClient

import main


class FakeStore:
    """In-memory stand-in for the Postgres tables, patched over main's store functions."""

    def __init__(self):
        self.users = {}
        self.favorites = {}
        self.notifications = {}
        self.calls = []
        self.next_id = 1

    def add_user(self, username, email, password="correct-horse"):
        user = {
            "id": self.next_id,
            "username": username,
            "email": email,
            "password_hash": main.hash_password(password),
        }
        self.users[user["id"]] = user
        self.next_id += 1
        return user

    def get_user_by_email(self, email):
        self.calls.append("get_user_by_email")
        return next((dict(u) for u in self.users.values() if u["email"] == email), None)

    def find_user_conflict(self, email, username):
        self.calls.append("find_user_conflict")
        for user in self.users.values():
            if user["email"] == email or user["username"] == username:
                return {"email": user["email"], "username": user["username"]}
        return None

    def create_user(self, username, email, password):
        self.calls.append("create_user")
        self.add_user(username, email, password)
        return True

    def get_user_profile(self, user_id):
        self.calls.append("get_user_profile")
        user = self.users.get(user_id)
        if not user:
            return None
        return {"id": user["id"], "username": user["username"], "email": user["email"]}

    def get_favorite_ids(self, user_id, media_type):
        self.calls.append("get_favorite_ids")
        return list(self.favorites.get((user_id, media_type), []))

    def add_favorite(self, user_id, media_type, media_id):
        self.calls.append("add_favorite")
        ids = self.favorites.setdefault((user_id, media_type), [])
        if media_id not in ids:
            ids.append(media_id)

    def remove_favorite(self, user_id, media_type, media_id):
        self.calls.append("remove_favorite")
        ids = self.favorites.get((user_id, media_type), [])
        if media_id in ids:
            ids.remove(media_id)

    def get_notifications(self, user_id):
        self.calls.append("get_notifications")
        return [dict(n) for n in self.notifications.get(user_id, [])]

    def insert_notification(self, user_id, record):
        self.calls.append("insert_notification")
        records = self.notifications.setdefault(user_id, [])
        for n in records:
            if n["id"] == record["id"] and n["notificationDate"] == record["notificationDate"]:
                return False
        records.append(dict(record))
        return True

    def delete_notifications(self, user_id, show_id):
        self.calls.append("delete_notifications")
        records = self.notifications.get(user_id, [])
        kept = [n for n in records if n["id"] != show_id]
        self.notifications[user_id] = kept
        return len(records) - len(kept)


STORE_FUNCTIONS = [
    "get_user_by_email",
    "find_user_conflict",
    "create_user",
    "get_user_profile",
    "get_favorite_ids",
    "add_favorite",
    "remove_favorite",
    "get_notifications",
    "insert_notification",
    "delete_notifications",
]


class FakeCatalog:
    def __init__(self):
        self.details = {}
        self.error = None
        self.calls = []

    def __call__(self, show_id):
        self.calls.append(show_id)
        if self.error is not None:
            raise self.error
        return self.details


class FakeMailer:
    def __init__(self):
        self.sent = []
        self.error = None

    def __call__(self, to, subject, html_body):
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html_body": html_body})


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    for name in STORE_FUNCTIONS:
        monkeypatch.setattr(main, name, getattr(fake, name))
    return fake


@pytest.fixture
def catalog(monkeypatch):
    fake = FakeCatalog()
    monkeypatch.setattr(main, "fetch_tv_details", fake)
    return fake


@pytest.fixture
def mailer(monkeypatch):
    fake = FakeMailer()
    monkeypatch.setattr(main, "send_email", fake)
    return fake


@pytest.fixture(autouse=True)
def secrets_configured(monkeypatch):
    monkeypatch.setattr(main, "JWT_SECRET", "test-secret")
    monkeypatch.setattr(main, "TMDB_API_KEY", "tmdb-test-key")


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def user(store):
    return store.add_user("testuser", "test@example.com")


@pytest.fixture
def logged_in(client, user):
    client.cookies.set(main.TOKEN_COOKIE, main.create_token(user))
    return client


@pytest.fixture
def anyio_backend():
    return "asyncio"
