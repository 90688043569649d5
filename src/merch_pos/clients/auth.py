from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import AuthError
from ..http_client import HttpClient
from ..models import Identity, TokenResponse

AUTH_PREFIX = "/auth/v1"


@dataclass
class AuthClient:
    """GoTrue-style email/password auth (e.g. Supabase Auth)."""

    http: HttpClient
    api_key: str
    access_token: str | None = None

    def _headers(self) -> dict[str, str]:
        headers = {"apikey": self.api_key}
        headers["Authorization"] = f"Bearer {self.access_token or self.api_key}"
        return headers

    def sign_up(self, email: str, password: str) -> Identity | None:
        data = self.http.request(
            "POST",
            f"{AUTH_PREFIX}/signup",
            headers=self._headers(),
            json_body={"email": email, "password": password},
            module="auth",
            operation="sign_up",
        )
        if not isinstance(data, dict):
            return None
        # Depending on project settings the user is returned bare or nested.
        user = data.get("user") if isinstance(data.get("user"), dict) else data
        return Identity.model_validate(user) if user.get("id") else None

    def sign_in_with_password(self, email: str, password: str) -> TokenResponse:
        data = self.http.request(
            "POST",
            f"{AUTH_PREFIX}/token",
            headers=self._headers(),
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
            module="auth",
            operation="sign_in",
        )
        if not isinstance(data, dict) or not data.get("access_token"):
            raise AuthError(code="INVALID_TOKEN_RESPONSE", message="Sign-in response carried no access token", status_code=401)
        token = TokenResponse.model_validate(data)
        self.access_token = token.access_token
        return token

    def sign_out(self) -> None:
        if not self.access_token:
            return
        try:
            self.http.request(
                "POST",
                f"{AUTH_PREFIX}/logout",
                headers=self._headers(),
                module="auth",
                operation="sign_out",
            )
        finally:
            self.access_token = None

    def get_current_user(self) -> Identity | None:
        if not self.access_token:
            return None
        try:
            data = self.http.request(
                "GET",
                f"{AUTH_PREFIX}/user",
                headers=self._headers(),
                module="auth",
                operation="get_user",
            )
        except AuthError:
            return None
        if not isinstance(data, dict):
            return None
        return Identity.model_validate(data)
