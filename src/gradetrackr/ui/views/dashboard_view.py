import logging
from typing import Callable, List
import flet as ft

from gradetrackr.core.assessment import DEFAULT_DIFFICULTY, MAX_DIFFICULTY, total_max_ca
from gradetrackr.core.calculator import ca_percentage, progress_band
from gradetrackr.core.models import Course
from gradetrackr.services.advisor_service import (
    AdvisorServiceError,
    CourseAnalysisReport,
    GeminiAdvisorService,
    format_required_score,
)
from gradetrackr.services.firestore_service import FirestoreService, FirestoreServiceError
from gradetrackr.state.app_state import AppState


logger = logging.getLogger(__name__)

PROGRESS_COLORS = {
    "green": ft.Colors.GREEN_400,
    "yellow": ft.Colors.AMBER_400,
    "red": ft.Colors.RED_400,
}

LIKELIHOOD_COLORS = {
    "high": ft.Colors.GREEN_400,
    "medium": ft.Colors.YELLOW_400,
    "low": ft.Colors.ORANGE_400,
    "very low": ft.Colors.RED_400,
}


def difficulty_stars(rating: int) -> ft.Row:
    return ft.Row(
        spacing=2,
        controls=[
            ft.Icon(
                ft.Icons.STAR if index < rating else ft.Icons.STAR_BORDER,
                color=ft.Colors.AMBER_400 if index < rating else ft.Colors.GREY_600,
                size=18,
            )
            for index in range(MAX_DIFFICULTY)
        ],
    )


def _progress_bar(percentage: float) -> ft.ProgressBar:
    return ft.ProgressBar(
        value=max(0.0, min(percentage, 100.0)) / 100,
        width=260,
        color=PROGRESS_COLORS[progress_band(percentage)],
        bgcolor=ft.Colors.GREY_800,
    )


def _course_card(course: Course, on_select: Callable[[str], None]) -> ft.Card:
    return ft.Card(
        content=ft.Container(
            padding=16,
            on_click=lambda _: on_select(course.id),
            content=ft.Column(
                spacing=8,
                controls=[
                    ft.Row(
                        alignment=ft.MainAxisAlignment.SPACE_BETWEEN,
                        controls=[
                            ft.Column(
                                spacing=2,
                                controls=[
                                    ft.Text(course.code, color=ft.Colors.INDIGO_300),
                                    ft.Text(course.name, size=18, weight=ft.FontWeight.BOLD),
                                ],
                            ),
                            ft.Column(
                                spacing=2,
                                horizontal_alignment=ft.CrossAxisAlignment.END,
                                controls=[
                                    ft.Text("Target", size=12),
                                    ft.Text(course.target_grade, size=22, weight=ft.FontWeight.BOLD),
                                ],
                            ),
                        ],
                    ),
                    difficulty_stars(course.difficulty),
                    ft.Text(f"C.A. Progress: {course.total_ca} / {total_max_ca()}"),
                    _progress_bar(ca_percentage(course.ca)),
                ],
            ),
        )
    )


def _analysis_panel(report: CourseAnalysisReport) -> ft.Column:
    controls: List[ft.Control] = [
        ft.Text("Overall Summary", size=18, weight=ft.FontWeight.BOLD),
        ft.Text(report.overall_summary),
    ]

    if report.priority_courses:
        controls.append(ft.Text("Priority Courses", size=18, weight=ft.FontWeight.BOLD))
        for item in report.priority_courses:
            controls.append(
                ft.Container(
                    padding=10,
                    border_radius=8,
                    bgcolor=ft.Colors.with_opacity(0.15, ft.Colors.YELLOW_700),
                    content=ft.Column(
                        spacing=2,
                        controls=[
                            ft.Text(item.course_name, weight=ft.FontWeight.BOLD, color=ft.Colors.YELLOW_300),
                            ft.Text(item.reason, size=13),
                        ],
                    ),
                )
            )

    controls.append(ft.Text("Detailed Breakdown", size=18, weight=ft.FontWeight.BOLD))
    for item in report.course_analyses:
        controls.append(
            ft.Card(
                content=ft.Container(
                    padding=12,
                    content=ft.Column(
                        controls=[
                            ft.Text(item.course_name, weight=ft.FontWeight.BOLD),
                            ft.Row(
                                wrap=True,
                                controls=[
                                    ft.Text(f"Current CA: {item.current_ca:g}"),
                                    ft.Text(f"Target: {item.target_grade}"),
                                    ft.Text(
                                        "Exam Score Needed: "
                                        f"{format_required_score(item.required_exam_score_for_target)}"
                                    ),
                                    ft.Text(
                                        f"Likelihood: {item.likelihood}",
                                        color=LIKELIHOOD_COLORS.get(item.likelihood.lower(), ft.Colors.GREY_300),
                                    ),
                                ],
                            ),
                            ft.Text(f"\"{item.advice}\"", italic=True, size=13),
                        ]
                    ),
                )
            )
        )
    return ft.Column(spacing=10, controls=controls)


def build_dashboard_view(
    page: ft.Page,
    app_state: AppState,
    on_open_course: Callable[[str], None],
    on_logout: Callable[[], None],
) -> ft.View:
    fs = FirestoreService.from_settings()

    name = ft.TextField(label="Course Name", hint_text="e.g., Introduction to AI", width=320)
    code = ft.TextField(label="Course Code", hint_text="e.g., CS101", width=160)
    difficulty = ft.Dropdown(
        width=160,
        label="Difficulty",
        value=str(DEFAULT_DIFFICULTY),
        options=[ft.dropdown.Option(str(level)) for level in range(1, MAX_DIFFICULTY + 1)],
    )
    status = ft.Text(color=ft.Colors.RED_400)
    course_grid = ft.Column(spacing=10)
    analysis_column = ft.Column(spacing=10)
    analysis_button = ft.Button("Get AI Analysis", icon=ft.Icons.PSYCHOLOGY)
    courses: List[Course] = []

    def set_status(message: str, is_error: bool = True) -> None:
        status.value = message
        status.color = ft.Colors.RED_400 if is_error else ft.Colors.GREEN_400

    def render_courses() -> None:
        course_grid.controls.clear()
        uid = app_state.session.uid
        if not uid:
            set_status("No active session.")
            return

        try:
            courses[:] = fs.list_courses(uid)
        except FirestoreServiceError as exc:
            set_status(f"Could not load courses: {exc}")
            return

        analysis_button.disabled = not courses
        if not courses:
            course_grid.controls.append(ft.Text("No courses yet. Add your first course above."))
            return

        for course in courses:
            course_grid.controls.append(_course_card(course, on_open_course))

    def on_add(_):
        uid = app_state.session.uid
        if not uid:
            set_status("No active session.")
            page.update()
            return

        if not name.value or not code.value:
            set_status("Course name and code are required.")
            page.update()
            return

        try:
            fs.create_course(
                uid,
                name=name.value,
                code=code.value,
                difficulty=int(difficulty.value or DEFAULT_DIFFICULTY),
            )
            name.value = ""
            code.value = ""
            difficulty.value = str(DEFAULT_DIFFICULTY)
            set_status("Course added.", is_error=False)
            render_courses()
        except FirestoreServiceError as exc:
            set_status(f"Failed to add course: {exc}")
        page.update()

    def on_analyze(_):
        analysis_column.controls.clear()
        analysis_button.disabled = True
        analysis_column.controls.append(ft.ProgressRing())
        page.update()

        try:
            report = GeminiAdvisorService.from_settings().analyze(list(courses))
            analysis_column.controls.clear()
            analysis_column.controls.append(_analysis_panel(report))
        except AdvisorServiceError as exc:
            logger.warning("Dashboard analysis failed: %s", exc)
            analysis_column.controls.clear()
            set_status(f"Analysis failed: {exc}")
        finally:
            analysis_button.disabled = not courses
        page.update()

    analysis_button.on_click = on_analyze
    render_courses()

    return ft.View(
        route="/dashboard",
        controls=[
            ft.AppBar(
                title=ft.Text("GradeTrackr - Dashboard"),
                actions=[ft.TextButton("Logout", on_click=lambda _: on_logout())],
            ),
            ft.Container(
                padding=20,
                content=ft.Column(
                    scroll=ft.ScrollMode.AUTO,
                    controls=[
                        ft.Text("Welcome!", size=28, weight=ft.FontWeight.BOLD),
                        ft.Text(app_state.session.email or ""),
                        ft.Divider(),
                        ft.Text("Add New Course", size=20, weight=ft.FontWeight.BOLD),
                        ft.Row(wrap=True, controls=[name, code, difficulty]),
                        ft.Row(
                            controls=[
                                ft.Button("Add Course", icon=ft.Icons.ADD, on_click=on_add),
                                analysis_button,
                            ]
                        ),
                        status,
                        ft.Divider(),
                        ft.Text("Your Courses", size=20, weight=ft.FontWeight.BOLD),
                        course_grid,
                        ft.Divider(),
                        analysis_column,
                    ],
                ),
            ),
        ],
    )
