"""Google Photos OAuth credential management."""

import logging
import threading
from pathlib import Path
from typing import Optional

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .errors import AuthenticationError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/photoslibrary.readonly"]


class AuthManager:
    """
    Manages Google Photos API authentication,
    reading/writing token files, refreshing creds, etc.
    """

    def __init__(self, credentials_file: Path, token_file: Path):
        self.credentials_file = Path(credentials_file)
        self.token_file = Path(token_file)
        self.creds: Optional[Credentials] = None
        # Reentrant: get_access_token falls back to authenticate
        self._lock = threading.RLock()

    def authenticate(self, force: bool = False) -> Credentials:
        """
        Loads credentials from token file if valid; otherwise performs OAuth flow.

        Args:
            force: Ignore any stored token and run the consent flow again
        """
        with self._lock:
            if force:
                self.creds = None
            elif self.creds is None and self.token_file.exists():
                try:
                    self.creds = Credentials.from_authorized_user_file(str(self.token_file), SCOPES)
                    logger.info(f"Using stored token from {self.token_file}")
                except ValueError as e:
                    logger.warning(f"Token file {self.token_file} is corrupt ({e}), re-authenticating")
                    self.creds = None

            if self.creds and self.creds.valid:
                return self.creds

            if self.creds and self.creds.expired and self.creds.refresh_token:
                try:
                    self.creds.refresh(Request())
                    logger.info("Refreshed expired access token")
                except RefreshError as e:
                    logger.warning(f"Token refresh failed ({e}), re-authenticating")
                    self.creds = self._run_flow()
            else:
                self.creds = self._run_flow()

            self._save_token()
            return self.creds

    def _run_flow(self) -> Credentials:
        if not self.credentials_file.exists():
            raise AuthenticationError(
                f"OAuth client secrets not found: {self.credentials_file}. "
                "Download it from Google Cloud Console -> APIs & Services -> Credentials",
                path=str(self.credentials_file),
            )

        logger.info("Authorization required, complete the consent flow in your browser")
        flow = InstalledAppFlow.from_client_secrets_file(str(self.credentials_file), SCOPES)
        creds = flow.run_local_server(port=0)
        logger.info("Authorization successful")
        return creds

    def _save_token(self) -> None:
        self.token_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.token_file, "w") as f:
            f.write(self.creds.to_json())
        logger.debug(f"Token saved to {self.token_file}")

    def get_access_token(self, force_refresh: bool = False) -> str:
        """Return a valid bearer token, re-authenticating when asked."""
        with self._lock:
            if force_refresh and self.creds and self.creds.refresh_token:
                try:
                    self.creds.refresh(Request())
                    self._save_token()
                    return self.creds.token
                except RefreshError as e:
                    logger.warning(f"Forced token refresh failed: {e}")
                return self.authenticate(force=True).token
            if force_refresh:
                return self.authenticate(force=True).token
            return self.authenticate().token
