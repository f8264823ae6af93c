from typing import Callable, Dict, Optional
import flet as ft

from gradetrackr.core.assessment import (
    CA_COMPONENTS,
    EXAM_MAX_MARKS,
    MAX_DIFFICULTY,
    TARGET_GRADES,
    total_max_ca,
)
from gradetrackr.core.calculator import (
    ExamOutlook,
    Score,
    parse_score,
    project_grades,
    total_ca,
    validate_component_score,
)
from gradetrackr.services.firestore_service import FirestoreService, FirestoreServiceError
from gradetrackr.state.app_state import AppState


OUTLOOK_STYLE = {
    ExamOutlook.SECURED: ("Secured", ft.Colors.GREEN_400),
    ExamOutlook.ACHIEVABLE: ("Achievable", ft.Colors.GREEN_400),
    ExamOutlook.IMPOSSIBLE: ("Impossible", ft.Colors.RED_400),
}


def score_change_handler(
    scores: Dict[str, Optional[Score]],
    name: str,
    max_marks: int,
    on_changed: Callable[[], None],
):
    """
    TextField on_change handler for one CA component. The field text is only
    rewritten when the entry was clamped, so partial input such as "7." stays
    editable.
    """

    def handler(e):
        raw = e.control.value
        parsed = parse_score(raw)
        scores[name] = validate_component_score(raw, max_marks)
        if parsed is not None and parsed != scores[name]:
            e.control.value = str(scores[name])
        on_changed()

    return handler


def build_course_view(
    page: ft.Page,
    app_state: AppState,
    course_id: str,
    on_back: Callable[[], None],
) -> ft.View:
    fs = FirestoreService.from_settings()
    uid = app_state.session.uid or ""

    status = ft.Text(color=ft.Colors.RED_400)
    total_text = ft.Text(size=22, weight=ft.FontWeight.BOLD, color=ft.Colors.INDIGO_300)
    projection_table = ft.DataTable(
        columns=[
            ft.DataColumn(ft.Text("Grade")),
            ft.DataColumn(ft.Text("Required Score")),
            ft.DataColumn(ft.Text("Status")),
        ],
        rows=[],
    )

    def set_status(message: str, is_error: bool = True) -> None:
        status.value = message
        status.color = ft.Colors.RED_400 if is_error else ft.Colors.GREEN_400

    try:
        course = fs.get_course(uid, course_id)
    except FirestoreServiceError as exc:
        course = None
        set_status(f"Could not load course: {exc}")

    if course is None:
        return ft.View(
            route=f"/courses/{course_id}",
            controls=[
                ft.AppBar(title=ft.Text("GradeTrackr - Course")),
                ft.Button("Back to Dashboard", on_click=lambda _: on_back()),
                status if status.value else ft.Text("Course not found."),
            ],
        )

    scores: Dict[str, Optional[Score]] = dict(course.ca)
    target = ft.Dropdown(
        label="Target",
        width=120,
        value=course.target_grade,
        options=[ft.dropdown.Option(grade) for grade in TARGET_GRADES],
    )
    difficulty = ft.Dropdown(
        label="Difficulty",
        width=140,
        value=str(course.difficulty),
        options=[ft.dropdown.Option(str(level)) for level in range(1, MAX_DIFFICULTY + 1)],
    )
    field_map: Dict[str, ft.TextField] = {}

    def refresh_projection() -> None:
        total_text.value = f"Total C.A. {total_ca(scores)} / {total_max_ca()}"
        projection_table.rows.clear()
        for row in project_grades(scores):
            label, color = OUTLOOK_STYLE[row.outlook]
            is_target = row.grade == target.value
            projection_table.rows.append(
                ft.DataRow(
                    selected=is_target,
                    cells=[
                        ft.DataCell(ft.Text(f"{row.grade} ({row.threshold}+)", weight=ft.FontWeight.BOLD)),
                        ft.DataCell(ft.Text(f"{row.required_score} / {EXAM_MAX_MARKS}", color=color)),
                        ft.DataCell(ft.Text(label, color=color)),
                    ],
                )
            )

    def on_scores_changed() -> None:
        refresh_projection()
        page.update()

    for item in CA_COMPONENTS:
        value = scores.get(item.name)
        field = ft.TextField(
            label=f"{item.label} (out of {item.max_marks})",
            width=260,
            hint_text="-",
            value="" if value is None else str(value),
            keyboard_type=ft.KeyboardType.NUMBER,
            on_change=score_change_handler(scores, item.name, item.max_marks, on_scores_changed),
        )
        field_map[item.name] = field

    def on_target_change(_):
        refresh_projection()
        page.update()

    target.on_change = on_target_change

    def on_save(_):
        try:
            fs.update_course(
                uid,
                course_id,
                ca=dict(scores),
                target_grade=target.value,
                difficulty=int(difficulty.value or course.difficulty),
            )
            set_status("Changes saved.", is_error=False)
        except FirestoreServiceError as exc:
            set_status(f"Failed to save: {exc}")
        page.update()

    def on_confirm_delete(_):
        page.pop_dialog()
        try:
            fs.delete_course(uid, course_id)
        except FirestoreServiceError as exc:
            set_status(f"Failed to delete: {exc}")
            page.update()
            return
        on_back()

    confirm = ft.AlertDialog(
        modal=True,
        title=ft.Text("Confirm Deletion"),
        content=ft.Text(f"Are you sure you want to delete \"{course.name}\"? This action cannot be undone."),
        actions=[
            ft.TextButton("Cancel", on_click=lambda _: page.pop_dialog()),
            ft.TextButton("Delete", on_click=on_confirm_delete),
        ],
    )

    def on_delete(_):
        page.show_dialog(confirm)

    refresh_projection()

    return ft.View(
        route=f"/courses/{course_id}",
        controls=[
            ft.AppBar(title=ft.Text(f"GradeTrackr - {course.code}")),
            ft.Container(
                padding=20,
                content=ft.Column(
                    scroll=ft.ScrollMode.AUTO,
                    controls=[
                        ft.Row(controls=[ft.Button("Back to Dashboard", on_click=lambda _: on_back())]),
                        ft.Text(course.code, color=ft.Colors.INDIGO_300),
                        ft.Text(course.name, size=28, weight=ft.FontWeight.BOLD),
                        ft.Row(controls=[target, difficulty]),
                        ft.Divider(),
                        ft.Text("Continuous Assessment", size=20, weight=ft.FontWeight.BOLD),
                        *field_map.values(),
                        total_text,
                        ft.Divider(),
                        ft.Text("Exam Target Analysis", size=20, weight=ft.FontWeight.BOLD),
                        projection_table,
                        ft.Divider(),
                        ft.Row(
                            controls=[
                                ft.Button("Save Changes", on_click=on_save),
                                ft.OutlinedButton("Delete Course", on_click=on_delete),
                            ]
                        ),
                        status,
                    ],
                ),
            ),
        ],
    )
