import unittest

from gradetrackr.state.app_state import AppState


class AppStateTests(unittest.TestCase):
    def test_starts_signed_out(self):
        state = AppState()
        self.assertFalse(state.session.is_authenticated)

    def test_reset_clears_session(self):
        state = AppState()
        state.session.sign_in("user-1", "ada@example.com", "id-token", "refresh-token")
        self.assertTrue(state.session.is_authenticated)

        state.reset()
        self.assertFalse(state.session.is_authenticated)
        self.assertIsNone(state.session.uid)
        self.assertIsNone(state.session.email)

    def test_only_session_is_tracked(self):
        self.assertEqual(list(vars(AppState())), ["session"])


if __name__ == "__main__":
    unittest.main()
