"""Unit tests for auth/store.py -- CredentialStore.

Covers:
- save_user / find_user_by_email / is_admin round trip
- duplicate email -> UserAlreadyExists (uniqueness enforced by the DB)
- email matching is case-sensitive
- unknown / zero ids -> UserNotFound, AppNotFound
- provisioning helpers (create_app, set_admin)
- unclassified SQL errors -> StoreFault
- concurrent duplicate registrations: exactly one wins
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from auth.errors import AppAlreadyExists, AppNotFound, StoreFault, UserAlreadyExists, UserNotFound
from auth.store import CredentialStore


class TestUsers:
    def test_first_user_gets_id_1(self, store):
        assert store.save_user("a@x.com", b"hash") == 1

    def test_find_user_by_email(self, store):
        uid = store.save_user("a@x.com", b"hash-bytes")
        user = store.find_user_by_email("a@x.com")
        assert user.id == uid
        assert user.email == "a@x.com"
        assert user.pass_hash == b"hash-bytes"
        assert user.is_admin is False

    def test_unknown_email_raises_user_not_found(self, store):
        with pytest.raises(UserNotFound) as exc_info:
            store.find_user_by_email("nobody@x.com")
        assert exc_info.value.op == "store.find_user_by_email"

    def test_duplicate_email_raises_user_already_exists(self, store):
        store.save_user("a@x.com", b"h1")
        with pytest.raises(UserAlreadyExists) as exc_info:
            store.save_user("a@x.com", b"h2")
        assert exc_info.value.op == "store.save_user"
        assert isinstance(exc_info.value.cause, IntegrityError)

    def test_failed_insert_leaves_original_record(self, store):
        store.save_user("a@x.com", b"h1")
        with pytest.raises(UserAlreadyExists):
            store.save_user("a@x.com", b"h2")
        assert store.find_user_by_email("a@x.com").pass_hash == b"h1"


class TestEmailCaseSensitivity:
    """Emails are matched exactly as stored."""

    def test_differently_cased_emails_are_distinct_users(self, store):
        first = store.save_user("Alice@x.com", b"h1")
        second = store.save_user("alice@x.com", b"h2")
        assert first != second

    def test_lookup_with_other_case_misses(self, store):
        store.save_user("Alice@x.com", b"h1")
        with pytest.raises(UserNotFound):
            store.find_user_by_email("alice@x.com")


class TestAdminFlag:
    def test_new_user_is_not_admin(self, store):
        uid = store.save_user("a@x.com", b"h")
        assert store.is_admin(uid) is False

    def test_set_admin_grants_and_revokes(self, store):
        uid = store.save_user("a@x.com", b"h")
        store.set_admin(uid, True)
        assert store.is_admin(uid) is True
        store.set_admin(uid, False)
        assert store.is_admin(uid) is False

    @pytest.mark.parametrize("user_id", [0, -1, 999])
    def test_unknown_user_raises_user_not_found(self, store, user_id):
        with pytest.raises(UserNotFound) as exc_info:
            store.is_admin(user_id)
        assert exc_info.value.op == "store.is_admin"

    def test_set_admin_unknown_user(self, store):
        with pytest.raises(UserNotFound):
            store.set_admin(42)


class TestApps:
    def test_find_seeded_app(self, store):
        app = store.find_app(1)
        assert app.id == 1
        assert app.name == "test-app"
        assert app.secret == "s1"

    @pytest.mark.parametrize("app_id", [0, 2, 999])
    def test_unknown_app_raises_app_not_found(self, store, app_id):
        with pytest.raises(AppNotFound):
            store.find_app(app_id)

    def test_create_app_assigns_next_id(self, store):
        assert store.create_app("second", "s2") == 2

    def test_duplicate_app_name(self, store):
        with pytest.raises(AppAlreadyExists) as exc_info:
            store.create_app("test-app", "other")
        assert isinstance(exc_info.value, StoreFault)

    def test_missing_secret_is_a_store_fault_not_a_duplicate(self, store):
        with pytest.raises(StoreFault) as exc_info:
            store.create_app("no-secret", None)
        assert not isinstance(exc_info.value, AppAlreadyExists)
        assert exc_info.value.op == "store.create_app"


class TestStoreFault:
    def test_sql_error_is_wrapped(self, store):
        with store.engine.connect() as conn:
            conn.execute(text("DROP TABLE users"))
            conn.commit()
        with pytest.raises(StoreFault) as exc_info:
            store.save_user("a@x.com", b"h")
        assert not isinstance(exc_info.value, UserAlreadyExists)
        assert exc_info.value.op == "store.save_user"

    def test_read_error_is_wrapped(self, store):
        with store.engine.connect() as conn:
            conn.execute(text("DROP TABLE apps"))
            conn.commit()
        with pytest.raises(StoreFault):
            store.find_app(1)


class TestConcurrency:
    """File-backed DB so worker threads use separate pooled connections."""

    @pytest.fixture
    def file_store(self, tmp_path):
        s = CredentialStore(f"sqlite:///{tmp_path / 'auth.db'}")
        yield s
        s.close()

    def _attempt(self, file_store: CredentialStore, email: str):
        try:
            return file_store.save_user(email, b"h")
        except UserAlreadyExists as exc:
            return exc

    def test_same_email_race_has_one_winner(self, file_store):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: self._attempt(file_store, "race@x.com"), range(8)))

        winners = [r for r in results if isinstance(r, int)]
        losers = [r for r in results if isinstance(r, UserAlreadyExists)]
        assert len(winners) == 1
        assert len(losers) == 7

    def test_distinct_emails_all_succeed(self, file_store):
        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(lambda i: file_store.save_user(f"user{i}@x.com", b"h"), range(8)))
        assert sorted(ids) == list(range(1, 9))
