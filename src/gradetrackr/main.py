import logging
import os

import flet as ft

from gradetrackr.config.settings import configure_logging
from gradetrackr.state.app_state import AppState
from gradetrackr.ui.views.course_view import build_course_view
from gradetrackr.ui.views.dashboard_view import build_dashboard_view
from gradetrackr.ui.views.login_view import build_login_view


logger = logging.getLogger(__name__)


def main(page: ft.Page) -> None:
    page.title = "GradeTrackr"
    page.theme_mode = ft.ThemeMode.DARK
    app_state = AppState()

    def go_dashboard() -> None:
        page.go("/dashboard")

    def open_course(course_id: str) -> None:
        page.go(f"/courses/{course_id}")

    def logout() -> None:
        app_state.reset()
        page.go("/login")

    def route_change(_) -> None:
        page.views.clear()
        route = page.route or "/"

        if not app_state.session.is_authenticated:
            page.views.append(build_login_view(page, app_state, go_dashboard))
        elif route.startswith("/courses/"):
            course_id = route.split("/", 2)[2]
            page.views.append(build_course_view(page, app_state, course_id, go_dashboard))
        else:
            page.views.append(build_dashboard_view(page, app_state, open_course, logout))

        logger.debug("Routed to %s", route)
        page.update()

    page.on_route_change = route_change
    page.go(page.route or "/login")


def run() -> None:
    configure_logging()
    web_mode = os.getenv("GRADETRACKR_WEB", "0") == "1"
    ft.app(
        target=main,
        view=ft.AppView.WEB_BROWSER if web_mode else ft.AppView.FLET_APP,
        port=int(os.getenv("PORT", "8550")),
    )


if __name__ == "__main__":
    run()
