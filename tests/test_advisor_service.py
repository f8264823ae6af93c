import json
import unittest
from unittest.mock import MagicMock, patch

from gradetrackr.core.models import Course
from gradetrackr.services.advisor_service import (
    AdvisorServiceError,
    GeminiAdvisorService,
    build_prompt,
    format_required_score,
    parse_report,
)


REPORT = {
    "overallSummary": "Solid start this semester.",
    "courseAnalyses": [
        {
            "courseName": "Introduction to AI",
            "currentCA": 32,
            "targetGrade": "A",
            "requiredExamScoreForTarget": 48,
            "likelihood": "Medium",
            "advice": "Revise search algorithms.",
        }
    ],
    "priorityCourses": [{"courseName": "Introduction to AI", "reason": "Hard exam ahead."}],
}


def _courses():
    return [
        Course(
            id="c1",
            name="Introduction to AI",
            code="CS101",
            ca={"mid_semester": 12, "assignment": 8, "quiz": 7, "attendance": None},
            target_grade="A",
            difficulty=4,
        )
    ]


def _response(status_code, payload):
    res = MagicMock()
    res.status_code = status_code
    res.json.return_value = payload
    return res


class PromptTests(unittest.TestCase):
    def test_prompt_carries_schema_and_course_data(self):
        prompt = build_prompt(_courses())
        self.assertIn("Mid Semester (15)", prompt)
        self.assertIn("Total CA is 40", prompt)
        self.assertIn("Maximum Exam marks: 60", prompt)
        self.assertIn("A >= 80, B >= 70, C >= 60, D >= 50", prompt)
        self.assertIn('"perceivedDifficulty": 4', prompt)
        self.assertIn('"attendance": null', prompt)


class ParseReportTests(unittest.TestCase):
    def test_parse(self):
        report = parse_report(REPORT)
        self.assertEqual(report.overall_summary, "Solid start this semester.")
        self.assertEqual(report.course_analyses[0].required_exam_score_for_target, 48.0)
        self.assertEqual(report.priority_courses[0].reason, "Hard exam ahead.")
        self.assertEqual(report.to_dict()["course_analyses"][0]["likelihood"], "Medium")

    def test_missing_keys(self):
        with self.assertRaises(AdvisorServiceError):
            parse_report({"overallSummary": "x", "courseAnalyses": []})
        broken = json.loads(json.dumps(REPORT))
        del broken["courseAnalyses"][0]["advice"]
        with self.assertRaises(AdvisorServiceError):
            parse_report(broken)

    def test_format_required_score(self):
        self.assertEqual(format_required_score(48), "48")
        self.assertEqual(format_required_score(48.0), "48")
        self.assertEqual(format_required_score(61), "N/A")
        self.assertEqual(format_required_score(-3), "N/A")


class GeminiAdvisorServiceTests(unittest.TestCase):
    def setUp(self):
        self.advisor = GeminiAdvisorService("gemini-key", model="gemini-2.5-flash", timeout=30)

    def test_requires_api_key(self):
        with self.assertRaises(AdvisorServiceError):
            GeminiAdvisorService("")

    def test_requires_courses(self):
        with self.assertRaises(AdvisorServiceError):
            self.advisor.analyze([])

    @patch("gradetrackr.services.advisor_service.requests.post")
    def test_analyze(self, post):
        post.return_value = _response(
            200,
            {"candidates": [{"content": {"parts": [{"text": json.dumps(REPORT)}]}}]},
        )
        report = self.advisor.analyze(_courses())

        self.assertEqual(report.course_analyses[0].likelihood, "Medium")
        url = post.call_args[0][0]
        self.assertTrue(url.endswith("/models/gemini-2.5-flash:generateContent"))
        body = post.call_args.kwargs["json"]
        self.assertEqual(body["generationConfig"]["responseMimeType"], "application/json")
        self.assertIn("overallSummary", body["generationConfig"]["responseSchema"]["required"])
        self.assertEqual(post.call_args.kwargs["headers"]["x-goog-api-key"], "gemini-key")

    @patch("gradetrackr.services.advisor_service.requests.post")
    def test_api_error(self, post):
        post.return_value = _response(403, {"error": {"message": "API key not valid"}})
        with self.assertRaises(AdvisorServiceError) as ctx:
            self.advisor.analyze(_courses())
        self.assertEqual(str(ctx.exception), "API key not valid")

    @patch("gradetrackr.services.advisor_service.requests.post")
    def test_non_json_text(self, post):
        post.return_value = _response(200, {"candidates": [{"content": {"parts": [{"text": "sorry"}]}}]})
        with self.assertRaises(AdvisorServiceError):
            self.advisor.analyze(_courses())

    @patch("gradetrackr.services.advisor_service.requests.post")
    def test_no_candidates(self, post):
        post.return_value = _response(200, {"candidates": []})
        with self.assertRaises(AdvisorServiceError):
            self.advisor.analyze(_courses())


if __name__ == "__main__":
    unittest.main()
