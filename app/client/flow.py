"""Client-side state for the two-step login form.

The controller only tracks what the form shows; the server decides which code
is valid. Input is checked before anything is sent.
"""
from __future__ import annotations

from enum import Enum
import logging
import re
from typing import Any, Optional, Protocol

LOGGER = logging.getLogger(__name__)

_CODE_PATTERN = re.compile(r"[0-9]{6}")

REQUEST_FAILED = "Request failed"


class FlowState(str, Enum):
    IDLE = "idle"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    AWAITING_CODE = "awaiting_code"
    COMPLETED = "completed"
    FAILED = "failed"


class LoginApiError(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class LoginApi(Protocol):
    def admin_login(self, username: str, password: str) -> dict: ...

    def admin_verify_otp(self, pending_token: str, code: str) -> dict: ...

    def reseller_login(self, username: str, password: str) -> dict: ...


class HttpLoginApi:
    """Calls the auth endpoints through an HTTP client exposing ``post``."""

    def __init__(self, client: Any, base_path: str = "/api/auth") -> None:
        self._client = client
        self._base_path = base_path.rstrip("/")

    def admin_login(self, username: str, password: str) -> dict:
        return self._post("/admin/login", {"username": username, "password": password})

    def admin_verify_otp(self, pending_token: str, code: str) -> dict:
        return self._post(
            "/admin/verify-otp", {"pending_token": pending_token, "code": code}
        )

    def reseller_login(self, username: str, password: str) -> dict:
        return self._post(
            "/reseller/login", {"username": username, "password": password}
        )

    def _post(self, path: str, payload: dict) -> dict:
        try:
            response = self._client.post(f"{self._base_path}{path}", json=payload)
        except Exception as exc:
            raise LoginApiError(0, REQUEST_FAILED) from exc
        try:
            data = response.json()
        except ValueError:
            data = None
        if response.status_code >= 400:
            detail = data.get("detail") if isinstance(data, dict) else None
            if not isinstance(detail, str):
                detail = REQUEST_FAILED
            raise LoginApiError(response.status_code, detail)
        if not isinstance(data, dict):
            raise LoginApiError(response.status_code, REQUEST_FAILED)
        return data


class LoginFlow:
    def __init__(self, api: LoginApi, tab: str = "admin") -> None:
        self._api = api
        self.tab = tab
        self.state = FlowState.IDLE
        self.resume_state: Optional[FlowState] = None
        self.masked_address: Optional[str] = None
        self.error: Optional[str] = None
        self.code_input = ""
        self.session: Optional[dict] = None
        self._pending_token: Optional[str] = None

    @property
    def awaiting_code(self) -> bool:
        return self.state == FlowState.AWAITING_CODE or (
            self.state == FlowState.FAILED
            and self.resume_state == FlowState.AWAITING_CODE
        )

    @property
    def has_pending_login(self) -> bool:
        return self._pending_token is not None

    def select_tab(self, tab: str) -> None:
        if tab not in ("admin", "reseller"):
            raise ValueError(f"Unknown tab: {tab}")
        if self.state == FlowState.CREDENTIALS_SUBMITTED:
            raise RuntimeError("A request is in flight")
        self.tab = tab
        self._reset()

    def submit_credentials(self, username: str, password: str) -> FlowState:
        if self.state not in (FlowState.IDLE, FlowState.FAILED) or self.awaiting_code:
            raise RuntimeError(f"Cannot submit credentials in state {self.state.value}")
        if not username.strip() or not password:
            self.error = "Username and password are required"
            return self.state

        self.state = FlowState.CREDENTIALS_SUBMITTED
        self.error = None
        try:
            if self.tab == "admin":
                data = self._api.admin_login(username.strip(), password)
            else:
                data = self._api.reseller_login(username.strip(), password)
        except LoginApiError as exc:
            return self._fail(exc.message, resume=FlowState.IDLE)
        except Exception:
            LOGGER.exception("Credential request failed")
            return self._fail(REQUEST_FAILED, resume=FlowState.IDLE)

        if self.tab == "admin" and data.get("requires_code"):
            self.masked_address = data.get("masked_address")
            self._pending_token = data.get("pending_token")
            self.code_input = ""
            self.state = FlowState.AWAITING_CODE
            self.resume_state = None
            return self.state
        return self._complete(data)

    def submit_code(self, code: str) -> FlowState:
        if not self.awaiting_code or self._pending_token is None:
            raise RuntimeError(f"Cannot submit a code in state {self.state.value}")
        self.code_input = code
        if not _CODE_PATTERN.fullmatch(code):
            self.error = "OTP must be 6 digits"
            return self.state

        self.error = None
        try:
            data = self._api.admin_verify_otp(self._pending_token, code)
        except LoginApiError as exc:
            # Stay on the code step; only the entered digits are cleared.
            self.code_input = ""
            return self._fail(exc.message, resume=FlowState.AWAITING_CODE)
        except Exception:
            LOGGER.exception("Code verification request failed")
            self.code_input = ""
            return self._fail(REQUEST_FAILED, resume=FlowState.AWAITING_CODE)
        return self._complete(data)

    def retry(self) -> FlowState:
        if self.state == FlowState.FAILED and self.resume_state is not None:
            self.state = self.resume_state
            self.resume_state = None
        return self.state

    def back(self) -> FlowState:
        if not self.awaiting_code:
            raise RuntimeError(f"Cannot go back from state {self.state.value}")
        # The server-side code still expires on its own.
        self._reset()
        return self.state

    def _fail(self, message: str, resume: FlowState) -> FlowState:
        LOGGER.debug("Login step failed: %s", message)
        self.error = message
        self.state = FlowState.FAILED
        self.resume_state = resume
        return self.state

    def _complete(self, data: dict) -> FlowState:
        self.session = data
        self._pending_token = None
        self.masked_address = None
        self.code_input = ""
        self.resume_state = None
        self.state = FlowState.COMPLETED
        return self.state

    def _reset(self) -> None:
        self.state = FlowState.IDLE
        self.resume_state = None
        self.masked_address = None
        self.error = None
        self.code_input = ""
        self._pending_token = None
