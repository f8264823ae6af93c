from dataclasses import dataclass, field
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Union
import requests
from requests import RequestException

from gradetrackr.config.settings import settings
from gradetrackr.core.assessment import (
    CA_COMPONENTS,
    COURSE_TOTAL_MARKS,
    EXAM_MAX_MARKS,
    GRADE_THRESHOLDS,
    TARGET_GRADES,
    total_max_ca,
)
from gradetrackr.core.models import Course, ca_to_document


logger = logging.getLogger(__name__)

LIKELIHOODS = ("High", "Medium", "Low", "Very Low")


class AdvisorServiceError(Exception):
    pass


@dataclass
class CourseAnalysis:
    course_name: str
    current_ca: float
    target_grade: str
    required_exam_score_for_target: float
    likelihood: str
    advice: str


@dataclass
class PriorityCourse:
    course_name: str
    reason: str


@dataclass
class CourseAnalysisReport:
    overall_summary: str
    course_analyses: List[CourseAnalysis] = field(default_factory=list)
    priority_courses: List[PriorityCourse] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_summary": self.overall_summary,
            "course_analyses": [
                {
                    "course_name": item.course_name,
                    "current_ca": item.current_ca,
                    "target_grade": item.target_grade,
                    "required_exam_score_for_target": item.required_exam_score_for_target,
                    "likelihood": item.likelihood,
                    "advice": item.advice,
                }
                for item in self.course_analyses
            ],
            "priority_courses": [
                {"course_name": item.course_name, "reason": item.reason}
                for item in self.priority_courses
            ],
        }


RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "overallSummary": {"type": "STRING"},
        "courseAnalyses": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "courseName": {"type": "STRING"},
                    "currentCA": {"type": "NUMBER"},
                    "targetGrade": {"type": "STRING"},
                    "requiredExamScoreForTarget": {"type": "NUMBER"},
                    "likelihood": {"type": "STRING", "enum": list(LIKELIHOODS)},
                    "advice": {"type": "STRING"},
                },
                "required": [
                    "courseName",
                    "currentCA",
                    "targetGrade",
                    "requiredExamScoreForTarget",
                    "likelihood",
                    "advice",
                ],
            },
        },
        "priorityCourses": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "courseName": {"type": "STRING"},
                    "reason": {"type": "STRING"},
                },
                "required": ["courseName", "reason"],
            },
        },
    },
    "required": ["overallSummary", "courseAnalyses", "priorityCourses"],
}


def format_required_score(value: Union[int, float], exam_max: int = EXAM_MAX_MARKS) -> str:
    if value < 0 or value > exam_max:
        return "N/A"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def build_prompt(courses: Iterable[Course]) -> str:
    course_data = [
        {
            "name": course.name,
            "code": course.code,
            "caScores": ca_to_document(course.ca),
            "targetGrade": course.target_grade,
            "perceivedDifficulty": course.difficulty,
        }
        for course in courses
    ]
    maxima = ", ".join(f"{item.label} ({item.max_marks})" for item in CA_COMPONENTS)
    thresholds = ", ".join(f"{grade} >= {GRADE_THRESHOLDS[grade]}" for grade in TARGET_GRADES)

    return f"""
You are an expert academic advisor AI. Your goal is to analyze a student's course progress and provide actionable advice.

Here is the student's data:
- Maximum CA marks: {maxima}. Total CA is {total_max_ca()}.
- Maximum Exam marks: {EXAM_MAX_MARKS}.
- Total marks for a course: {COURSE_TOTAL_MARKS}.
- Grade thresholds: {thresholds}.

Student's course data:
- Scores for CA components are provided as numbers.
- A 'null' value for a CA component means the assessment has not been completed or graded yet.
- 'perceivedDifficulty' is a self-reported score on a scale of 1-5 where 5 is hardest.
{json.dumps(course_data, indent=2)}

Please perform the following analysis and return the result in the specified JSON format.
1. Write a brief, encouraging 'overallSummary' of the student's performance based on the assessments completed so far.
2. For each course, create an object in the 'courseAnalyses' array.
   - Calculate 'currentCA' as the sum of all their COMPLETED CA scores (ignore nulls).
   - Based on their performance in completed assessments, project their final CA score if possible. Then calculate the 'requiredExamScoreForTarget' needed to get their 'targetGrade'. If it's impossible (score > {EXAM_MAX_MARKS} or < 0), state the calculated number.
   - Assess the 'likelihood' of achieving the target grade as 'High', 'Medium', 'Low', or 'Very Low'. This likelihood must be heavily influenced by their performance so far, the 'requiredExamScoreForTarget' AND the student's 'perceivedDifficulty'. A high difficulty score should significantly lower the likelihood.
   - Provide brief, specific 'advice'. For courses with many upcoming assessments, advise on how to prepare.
3. Identify the top 1-3 'priorityCourses' that need the most attention and explain the 'reason', considering poor performance on completed work, high difficulty, and upcoming high-value assessments.
""".strip()


def _require(data: Dict[str, Any], key: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise AdvisorServiceError(f"Analysis response is missing '{key}'")
    return data[key]


def parse_report(payload: Dict[str, Any]) -> CourseAnalysisReport:
    if not isinstance(payload, dict):
        raise AdvisorServiceError("Analysis response must be a JSON object")

    analyses: List[CourseAnalysis] = []
    for item in _require(payload, "courseAnalyses") or []:
        try:
            analyses.append(
                CourseAnalysis(
                    course_name=str(_require(item, "courseName")),
                    current_ca=float(_require(item, "currentCA")),
                    target_grade=str(_require(item, "targetGrade")),
                    required_exam_score_for_target=float(_require(item, "requiredExamScoreForTarget")),
                    likelihood=str(_require(item, "likelihood")),
                    advice=str(_require(item, "advice")),
                )
            )
        except (TypeError, ValueError) as exc:
            raise AdvisorServiceError(f"Malformed course analysis: {exc}") from exc

    priorities = [
        PriorityCourse(
            course_name=str(_require(item, "courseName")),
            reason=str(_require(item, "reason")),
        )
        for item in _require(payload, "priorityCourses") or []
    ]

    return CourseAnalysisReport(
        overall_summary=str(_require(payload, "overallSummary")),
        course_analyses=analyses,
        priority_courses=priorities,
    )


class GeminiAdvisorService:
    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", timeout: float = 60) -> None:
        if not api_key:
            raise AdvisorServiceError(
                "Gemini API key is not configured. Set GEMINI_API_KEY in the environment."
            )
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "GeminiAdvisorService":
        return cls(
            settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=max(settings.request_timeout, 60),
        )

    def analyze(self, courses: List[Course]) -> CourseAnalysisReport:
        if not courses:
            raise AdvisorServiceError("Add at least one course before requesting an analysis.")

        body = {
            "contents": [{"role": "user", "parts": [{"text": build_prompt(courses)}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }
        data = self._post(f"/models/{self.model}:generateContent", body)
        text = self._response_text(data)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("Gemini returned non-JSON analysis text")
            raise AdvisorServiceError("Analysis response was not valid JSON") from exc
        report = parse_report(payload)
        logger.info("Received analysis for %d course(s)", len(report.course_analyses))
        return report

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.BASE_URL}{path}"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            res = requests.post(url, headers=headers, json=body, timeout=self.timeout)
        except RequestException as exc:
            logger.error("Gemini request failed: %s", exc)
            raise AdvisorServiceError("ANALYSIS_SERVICE_UNAVAILABLE") from exc
        try:
            data = res.json()
        except ValueError:
            raise AdvisorServiceError("ANALYSIS_SERVICE_UNAVAILABLE")

        if res.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            message = str(error.get("message")) if isinstance(error, dict) and error.get("message") else "ANALYSIS_ERROR"
            logger.error("Gemini rejected analysis request (%s): %s", res.status_code, message)
            raise AdvisorServiceError(message)
        return data

    @staticmethod
    def _response_text(data: Dict[str, Any]) -> str:
        candidates: Optional[list] = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise AdvisorServiceError("Analysis response contained no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text", "")) for part in parts).strip()
        if not text:
            raise AdvisorServiceError("Analysis response was empty")
        return text
