from __future__ import annotations

import importlib
import os
import tempfile
import unittest


class AuthTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, "test_auth.db")
        self._old_db_path = os.environ.get("DB_PATH")
        os.environ["DB_PATH"] = self.db_path

        import strideflow.settings as settings_mod
        importlib.reload(settings_mod)
        import strideflow.auth as auth_mod
        import strideflow.db as db_mod

        db_mod.init_db()
        self.auth_mod = auth_mod
        self.settings_mod = settings_mod

    def tearDown(self) -> None:
        if self._old_db_path is None:
            os.environ.pop("DB_PATH", None)
        else:
            os.environ["DB_PATH"] = self._old_db_path
        importlib.reload(self.settings_mod)
        self._tmp.cleanup()

    def test_sign_up_then_sign_in(self) -> None:
        s1 = self.auth_mod.sign_up("Walker@Example.com", "secret1")
        self.assertEqual(self.auth_mod.resolve_session(s1.token), s1.user_id)

        s2 = self.auth_mod.sign_in("walker@example.com", "secret1")
        self.assertEqual(s2.user_id, s1.user_id)
        self.assertNotEqual(s2.token, s1.token)
        self.assertEqual(self.auth_mod.get_user_email(s1.user_id), "walker@example.com")

    def test_duplicate_sign_up_is_rejected(self) -> None:
        from strideflow.errors import DuplicateAccount

        self.auth_mod.sign_up("a@example.com", "secret1")
        with self.assertRaises(DuplicateAccount):
            self.auth_mod.sign_up("A@example.com", "other12")

    def test_wrong_password_is_rejected(self) -> None:
        from strideflow.errors import AuthError

        self.auth_mod.sign_up("a@example.com", "secret1")
        with self.assertRaises(AuthError):
            self.auth_mod.sign_in("a@example.com", "secret2")
        with self.assertRaises(AuthError):
            self.auth_mod.sign_in("nobody@example.com", "secret1")

    def test_credentials_are_validated(self) -> None:
        from strideflow.errors import InvalidInput

        with self.assertRaises(InvalidInput):
            self.auth_mod.sign_up("not-an-email", "secret1")
        with self.assertRaises(InvalidInput):
            self.auth_mod.sign_up("a@example.com", "short")

    def test_sign_out_ends_session(self) -> None:
        s = self.auth_mod.sign_up("a@example.com", "secret1")
        self.auth_mod.sign_out(s.token)
        self.assertIsNone(self.auth_mod.resolve_session(s.token))
        # idempotent
        self.auth_mod.sign_out(s.token)

    def test_password_is_stored_as_werkzeug_hash(self) -> None:
        from werkzeug.security import check_password_hash

        from strideflow.db import db

        s = self.auth_mod.sign_up("a@example.com", "secret1")
        with db() as conn:
            stored = conn.execute(
                "SELECT password_hash FROM users WHERE id = ?", (s.user_id,)
            ).fetchone()["password_hash"]
        self.assertNotIn("secret1", stored)
        self.assertTrue(check_password_hash(stored, "secret1"))
        self.assertFalse(check_password_hash(stored, "secret2"))

    def test_stale_session_is_expired(self) -> None:
        from datetime import datetime, timedelta, timezone

        from strideflow.db import db

        s = self.auth_mod.sign_up("a@example.com", "secret1")
        fresh = self.auth_mod.sign_in("a@example.com", "secret1")
        issued = datetime.now(timezone.utc) - timedelta(days=self.settings_mod.SESSION_TTL_DAYS + 1)
        with db() as conn:
            conn.execute(
                "UPDATE sessions SET created_at = ? WHERE token_hash = ?",
                (issued.isoformat(), self.auth_mod.hash_token(s.token)),
            )

        self.assertIsNone(self.auth_mod.resolve_session(s.token))
        with db() as conn:
            left = conn.execute("SELECT COUNT(*) AS n FROM sessions").fetchone()["n"]
        self.assertEqual(left, 1)
        self.assertEqual(self.auth_mod.resolve_session(fresh.token), s.user_id)

    def test_registration_can_be_disabled(self) -> None:
        from strideflow.errors import AuthError

        os.environ["REGISTER_ENABLED"] = "false"
        try:
            importlib.reload(self.settings_mod)
            with self.assertRaises(AuthError):
                self.auth_mod.sign_up("a@example.com", "secret1")
        finally:
            os.environ.pop("REGISTER_ENABLED", None)

    def test_session_events_are_published(self) -> None:
        events = self.auth_mod.SessionEvents()
        seen: list = []
        unsubscribe = events.subscribe(seen.append)

        s = self.auth_mod.sign_up("a@example.com", "secret1", events=events)
        self.auth_mod.sign_out(s.token, events=events)
        self.auth_mod.sign_in("a@example.com", "secret1", events=events)
        self.assertEqual(seen, [s.user_id, None, s.user_id])

        unsubscribe()
        self.auth_mod.sign_in("a@example.com", "secret1", events=events)
        self.assertEqual(len(seen), 3)

    def test_failing_listener_does_not_block_others(self) -> None:
        events = self.auth_mod.SessionEvents()
        seen: list = []

        def boom(_user_id):
            raise RuntimeError("listener failed")

        events.subscribe(boom)
        events.subscribe(seen.append)
        with self.assertLogs("strideflow.auth", level="ERROR"):
            events.publish("u1")
        self.assertEqual(seen, ["u1"])


class BearerTests(unittest.TestCase):
    def test_parse_bearer(self) -> None:
        from strideflow.auth import parse_bearer
        from strideflow.errors import AuthError

        self.assertEqual(parse_bearer("Bearer abc"), "abc")
        self.assertEqual(parse_bearer("bearer  abc "), "abc")
        for bad in (None, "", "Basic abc", "Bearer "):
            with self.assertRaises(AuthError):
                parse_bearer(bad)


if __name__ == "__main__":
    unittest.main()
