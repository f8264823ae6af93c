import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from gradetrackr.app import app
from gradetrackr.core.models import Course
from gradetrackr.services.advisor_service import AdvisorServiceError, CourseAnalysisReport
from gradetrackr.services.auth_service import AuthResult, AuthServiceError
from gradetrackr.services.firestore_service import CourseNotFoundError


HEADERS = {"x-user-id": "user-1"}


def _course(**overrides):
    data = {
        "id": "c1",
        "name": "Introduction to AI",
        "code": "CS101",
        "ca": {"mid_semester": 12, "assignment": 8, "quiz": 7, "attendance": 5},
        "target_grade": "A",
        "difficulty": 3,
    }
    data.update(overrides)
    return Course(**data)


class ApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)
        self.fs = MagicMock()
        patcher = patch("gradetrackr.app.FirestoreService.from_settings", return_value=self.fs)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_requires_user_header(self):
        res = self.client.get("/courses")
        self.assertEqual(res.status_code, 401)

    def test_list_courses(self):
        self.fs.list_courses.return_value = [_course()]
        res = self.client.get("/courses", headers=HEADERS)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()[0]["total_ca"], 32)
        self.fs.list_courses.assert_called_once_with("user-1")

    def test_create_course(self):
        self.fs.create_course.return_value = _course(ca={}, id="new")
        res = self.client.post("/courses", headers=HEADERS, json={"name": "AI", "code": "CS101", "difficulty": 2})
        self.assertEqual(res.status_code, 201)
        self.fs.create_course.assert_called_once_with("user-1", name="AI", code="CS101", difficulty=2)

    def test_create_course_validates_difficulty(self):
        res = self.client.post("/courses", headers=HEADERS, json={"name": "AI", "code": "CS101", "difficulty": 9})
        self.assertEqual(res.status_code, 422)

    def test_update_passes_only_sent_fields(self):
        self.fs.update_course.return_value = _course(target_grade="B")
        res = self.client.patch(
            "/courses/c1",
            headers=HEADERS,
            json={"target_grade": "B", "ca": {"quiz": "9"}},
        )
        self.assertEqual(res.status_code, 200)
        self.fs.update_course.assert_called_once_with("user-1", "c1", target_grade="B", ca={"quiz": "9"})

    def test_update_missing_course(self):
        self.fs.update_course.side_effect = CourseNotFoundError("Course c9 not found.")
        res = self.client.patch("/courses/c9", headers=HEADERS, json={"difficulty": 2})
        self.assertEqual(res.status_code, 404)

    def test_get_missing_course(self):
        self.fs.get_course.return_value = None
        res = self.client.get("/courses/c9", headers=HEADERS)
        self.assertEqual(res.status_code, 404)

    def test_delete_course(self):
        res = self.client.delete("/courses/c1", headers=HEADERS)
        self.assertEqual(res.json(), {"status": "deleted"})
        self.fs.delete_course.assert_called_once_with("user-1", "c1")

    def test_course_projection(self):
        self.fs.get_course.return_value = _course()
        body = self.client.get("/courses/c1/projection", headers=HEADERS).json()
        self.assertEqual(body["total_ca"], 32)
        self.assertEqual(body["ca_percentage"], 80.0)
        grade_a = body["grades"][0]
        self.assertEqual(grade_a, {
            "grade": "A",
            "threshold": 80,
            "required_score": 48,
            "achievable": True,
            "outlook": "achievable",
        })

    def test_preview_projection_validates_input(self):
        body = self.client.post("/projection", json={"ca": {"mid_semester": "999", "quiz": ""}}).json()
        self.assertEqual(body["ca"]["mid_semester"], 15)
        self.assertIsNone(body["ca"]["quiz"])
        self.assertEqual(body["grades"][0]["required_score"], 65)
        self.assertFalse(body["grades"][0]["achievable"])

    def test_preview_projection_unknown_component(self):
        res = self.client.post("/projection", json={"ca": {"homework": 3}})
        self.assertEqual(res.status_code, 400)

    @patch("gradetrackr.app.FirebaseAuthService.from_settings")
    def test_login(self, from_settings):
        from_settings.return_value.sign_in.return_value = AuthResult("uid-1", "a@b.com", "tok", "ref")
        res = self.client.post("/auth/login", json={"email": "a@b.com", "password": "secret1"})
        self.assertEqual(res.json()["uid"], "uid-1")

    @patch("gradetrackr.app.FirebaseAuthService.from_settings")
    def test_login_failure(self, from_settings):
        from_settings.return_value.sign_in.side_effect = AuthServiceError("INVALID_PASSWORD")
        res = self.client.post("/auth/login", json={"email": "a@b.com", "password": "wrong"})
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json()["detail"], "INVALID_PASSWORD")

    @patch("gradetrackr.app.FirebaseAuthService.from_settings")
    def test_signup_creates_profile(self, from_settings):
        from_settings.return_value.sign_up.return_value = AuthResult("uid-2", "n@b.com", "tok", "ref")
        res = self.client.post("/auth/signup", json={"email": "n@b.com", "password": "secret1"})
        self.assertEqual(res.status_code, 200)
        self.fs.ensure_user_profile.assert_called_once_with("uid-2", "n@b.com")

    @patch("gradetrackr.app.GeminiAdvisorService.from_settings")
    def test_analysis(self, from_settings):
        self.fs.list_courses.return_value = [_course()]
        from_settings.return_value.analyze.return_value = CourseAnalysisReport(overall_summary="Keep going.")
        res = self.client.post("/analysis", headers=HEADERS)
        self.assertEqual(res.json()["overall_summary"], "Keep going.")

    @patch("gradetrackr.app.GeminiAdvisorService.from_settings")
    def test_analysis_failure(self, from_settings):
        self.fs.list_courses.return_value = [_course()]
        from_settings.side_effect = AdvisorServiceError("Gemini API key is not configured.")
        res = self.client.post("/analysis", headers=HEADERS)
        self.assertEqual(res.status_code, 502)


class StartupTests(unittest.TestCase):
    @patch("gradetrackr.app.configure_logging")
    def test_logging_configured_on_startup_not_import(self, configure):
        configure.assert_not_called()
        with TestClient(app) as client:
            configure.assert_called_once_with()
            self.assertEqual(client.get("/health").status_code, 200)
        configure.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
