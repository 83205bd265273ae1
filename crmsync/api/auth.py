"""Google authorization API endpoints."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse

from crmsync.api.deps import get_calendar_client, get_credential_store
from crmsync.exceptions import CRMSyncError
from crmsync.schemas.common import CamelModel
from crmsync.services.credentials import AuthState, CredentialStore
from crmsync.services.google_calendar import CalendarClient

router = APIRouter()
logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    AuthState.UNAUTHENTICATED: "Not connected to Google Calendar",
    AuthState.AUTH_PENDING: "Waiting for Google authorization to complete",
    AuthState.AUTHENTICATED: "Connected to Google Calendar",
}


class AuthUrlResponse(CamelModel):
    success: bool = True
    auth_url: str


class AuthStatusResponse(CamelModel):
    success: bool = True
    authenticated: bool
    state: AuthState
    message: str


def _callback_page(success: bool, message: str) -> str:
    """Page shown in the consent popup: notify the opener, then close."""
    payload = json.dumps({"type": "google-auth", "success": success, "message": message})
    payload = payload.replace("<", "\\u003c")  # keep "</script>" out of the inline script
    title = "Authorization complete" if success else "Authorization failed"
    return f"""<!DOCTYPE html>
<html>
<head><title>{title}</title></head>
<body>
  <p>{title}. You can close this window.</p>
  <script>
    if (window.opener) {{
      window.opener.postMessage({payload}, "*");
    }}
    window.close();
  </script>
</body>
</html>"""


@router.get("/google", response_model=AuthUrlResponse)
async def google_login(
    calendar: Annotated[CalendarClient, Depends(get_calendar_client)],
) -> AuthUrlResponse:
    """Get the Google consent URL for the dashboard to open."""
    return AuthUrlResponse(auth_url=calendar.authorization_url())


@router.get("/google/callback", response_class=HTMLResponse)
async def google_callback(
    calendar: Annotated[CalendarClient, Depends(get_calendar_client)],
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
) -> HTMLResponse:
    """Handle the Google OAuth redirect."""
    if error or not code:
        reason = error or "missing authorization code"
        logger.warning(f"Google authorization failed: {reason}")
        return HTMLResponse(
            _callback_page(False, f"Authorization failed: {reason}"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        await calendar.complete_authorization(code, state)
    except CRMSyncError as e:
        logger.warning(f"Google authorization failed: {e.message}")
        return HTMLResponse(_callback_page(False, e.message), status_code=e.status_code)

    return HTMLResponse(_callback_page(True, "Connected to Google Calendar"))


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(
    credential_store: Annotated[CredentialStore, Depends(get_credential_store)],
) -> AuthStatusResponse:
    """Report whether Google Calendar is connected."""
    return AuthStatusResponse(
        authenticated=credential_store.is_authenticated,
        state=credential_store.state,
        message=STATUS_MESSAGES[credential_store.state],
    )
