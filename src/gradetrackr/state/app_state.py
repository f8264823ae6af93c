from dataclasses import dataclass, field

from gradetrackr.state.session_state import SessionState


@dataclass
class AppState:
    session: SessionState = field(default_factory=SessionState)

    def reset(self) -> None:
        self.session.clear()
