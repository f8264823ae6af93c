from dataclasses import dataclass
import logging
from typing import Any, Dict
import requests
from requests import RequestException

from gradetrackr.config.settings import settings


logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthServiceError(Exception):
    pass


@dataclass
class AuthResult:
    uid: str
    email: str
    id_token: str
    refresh_token: str


class FirebaseAuthService:
    BASE_URL = "https://identitytoolkit.googleapis.com/v1"
    SIGN_UP_PATH = "/accounts:signUp"
    LOGIN_PATH = "/accounts:signInWithPassword"

    def __init__(self, api_key: str, timeout: float = 15) -> None:
        if not api_key:
            raise AuthServiceError("Missing FIREBASE_API_KEY in environment")
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "FirebaseAuthService":
        return cls(settings.firebase_api_key, timeout=settings.request_timeout)

    def sign_up(self, email: str, password: str) -> AuthResult:
        email = self._check_credentials(email, password)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthServiceError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        response = self._post(
            self.SIGN_UP_PATH,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._to_result(response, email)

    def sign_in(self, email: str, password: str) -> AuthResult:
        email = self._check_credentials(email, password)
        response = self._post(
            self.LOGIN_PATH,
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._to_result(response, email)

    @staticmethod
    def _check_credentials(email: str, password: str) -> str:
        email = (email or "").strip()
        if not email or not password:
            raise AuthServiceError("Email and password are required.")
        return email

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.BASE_URL}{path}"
        try:
            res = requests.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
        except RequestException as exc:
            logger.warning("Auth request to %s failed: %s", path, exc)
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE") from exc
        try:
            data = res.json()
        except ValueError:
            raise AuthServiceError("AUTH_SERVICE_UNAVAILABLE")

        if res.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            message = ""
            if isinstance(error, dict):
                message = str(error.get("message") or "")
            error_key = message.replace("Firebase: ", "") or "AUTH_ERROR"
            logger.info("Auth request to %s rejected: %s", path, error_key)
            raise AuthServiceError(error_key)

        return data

    @staticmethod
    def _to_result(data: Dict[str, Any], email: str) -> AuthResult:
        uid = str(data.get("localId") or "")
        if not uid:
            raise AuthServiceError("INVALID_FIREBASE_SESSION")
        return AuthResult(
            uid=uid,
            email=str(data.get("email") or email),
            id_token=str(data.get("idToken") or ""),
            refresh_token=str(data.get("refreshToken") or ""),
        )
