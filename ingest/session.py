"""
Redmine session: a base URL, one authentication variant and a transport.
All resource accessors live here; each is one request (or one paginated fetch) plus decoding.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

from requests.auth import AuthBase

from ingest.pagination import PAGE_SIZE, fetch_all
from ingest.transport import ApiKeyAuth, AuthError, BasicAuth, DecodeError, HTTPError, RedmineError, Transport
from normalize.models import Issue, IssueStatus, IssueUpdate, Project, TimeEntry, User
from normalize.util import (
    decode_envelope,
    decode_issue,
    decode_issue_status,
    decode_project,
    decode_time_entry,
    decode_user,
    unwrap,
    unwrap_list,
)

logger = logging.getLogger(__name__)


class Session:
    """
    An active connection to a Redmine server.

    Use Session.establish_by_key() when the API key is known, or Session.establish_by_credentials()
    to trade a username/password for the user's API key. The auth variant is fixed at construction.
    """

    def __init__(self, base_url: str, auth: AuthBase, transport: Optional[Transport] = None):
        if not base_url:
            raise ValueError("base_url must be a non-empty string")
        if not isinstance(auth, (ApiKeyAuth, BasicAuth)):
            raise TypeError(f"auth must be ApiKeyAuth or BasicAuth, got {type(auth).__name__}")
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self.transport = transport if transport is not None else Transport()

    @classmethod
    def establish_by_key(cls, base_url: str, api_key: str, transport: Optional[Transport] = None) -> "Session":
        """Open a session for a known API key. No network call is made."""
        return cls(base_url, ApiKeyAuth(api_key), transport)

    @classmethod
    def establish_by_credentials(cls, base_url: str, username: str, password: str, transport: Optional[Transport] = None) -> "Session":
        """Fetch the current user with basic auth and return a session signed with that user's API key.

        Raises AuthError if the lookup fails with an HTTP or decode error, or if the account has no
        API key (REST API disabled for it). NetworkError propagates unchanged.
        """
        basic = cls(base_url, BasicAuth(username, password), transport)
        try:
            try:
                user = basic.get_current_user()
            except (HTTPError, DecodeError) as exc:
                raise AuthError(f"could not authenticate {username!r} against {basic.base_url}: {exc.message}", status_code=exc.status_code) from exc
            if not user.api_key:
                raise AuthError(f"user {username!r} has no API key; is the REST API enabled?")
        except RedmineError:
            # a transport we created ourselves has no other owner
            if transport is None:
                basic.transport.close()
            raise
        logger.info("authenticated as %s (id %s)", user.login or username, user.id)
        return cls(base_url, ApiKeyAuth(user.api_key), basic.transport)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def auth(self) -> AuthBase:
        return self._auth

    @property
    def api_key(self) -> str:
        """The API key signing requests, or an empty string for basic-auth sessions."""
        return self._auth.api_key if isinstance(self._auth, ApiKeyAuth) else ""

    def issue_url(self, issue: Union[Issue, int]) -> str:
        """Browser URL for an issue."""
        issue_id = issue.id if isinstance(issue, Issue) else int(issue)
        return f"{self._base_url}/issues/{issue_id}"

    def __repr__(self):
        return f"Session(base_url={self._base_url!r}, auth={self._auth!r})"

    # --- plumbing ---

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> bytes:
        return self.transport.send("GET", self._base_url + path, self._auth, params=params)

    def put(self, path: str, body: Dict[str, Any]) -> bytes:
        return self.transport.send("PUT", self._base_url + path, self._auth, body=body)

    # --- users ---

    def get_current_user(self) -> User:
        return decode_user(unwrap(self.get("/users/current.json"), "user"))

    # --- issues ---

    def list_watched_issues(self) -> List[Issue]:
        """All issues the session user watches."""
        params = {"watcher_id": "me", "limit": str(PAGE_SIZE)}
        return [decode_issue(raw) for raw in fetch_all(self, "/issues.json", "issues", params)]

    def get_issue(self, issue_id: int) -> Issue:
        return decode_issue(unwrap(self.get(f"/issues/{int(issue_id)}.json"), "issue"))

    def update_issue(self, issue_id: int, update: IssueUpdate) -> None:
        """Send the fields set on `update`; everything else is left unchanged on the server."""
        if not isinstance(update, IssueUpdate):
            raise TypeError(f"update must be an IssueUpdate, got {type(update).__name__}")
        logger.debug("updating issue %s: %s", issue_id, sorted(update.to_payload()))
        self.put(f"/issues/{int(issue_id)}.json", {"issue": update.to_payload()})

    # --- time entries ---

    def build_time_entry_params(self, user_id: str, project_id: str, days_back: int, today: Optional[date] = None) -> Dict[str, str]:
        """Query parameters for time entries spent in the last `days_back` days, today included.

        Empty user/project ids are left out so the filter does not apply.
        """
        until = today or date.today()
        since = until - timedelta(days=days_back)
        params = {
            "spent_on": f"><{since.isoformat()}|{until.isoformat()}",
            "limit": str(PAGE_SIZE),
        }
        if user_id:
            params["user_id"] = str(user_id)
        if project_id:
            params["project_id"] = str(project_id)
        return params

    def list_time_entries(self, params: Optional[Dict[str, str]] = None) -> List[TimeEntry]:
        return [decode_time_entry(raw) for raw in fetch_all(self, "/time_entries.json", "time_entries", params)]

    # --- projects ---

    def list_projects(self) -> List[Project]:
        params = {"limit": str(PAGE_SIZE)}
        return [decode_project(raw) for raw in fetch_all(self, "/projects.json", "projects", params)]

    # --- issue statuses ---

    def list_issue_statuses(self) -> List[IssueStatus]:
        """All configured statuses. The endpoint is not paginated."""
        envelope = decode_envelope(self.get("/issue_statuses.json"), "issue_statuses")
        return [decode_issue_status(raw) for raw in unwrap_list(envelope, "issue_statuses")]


__all__ = ["Session"]
