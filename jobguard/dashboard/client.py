"""
HTTP client for the admin dashboard.
Talks to the JobGuard API with requests; any object with requests'
get/post interface can be passed in as the session.
"""

from typing import Any, Dict, Optional

import requests

API_PREFIX = "/api/v1"


class DashboardError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class JobGuardClient:
    def __init__(self, base_url: str, session=None, timeout: float = 15):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.token: Optional[str] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}{path}"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def _handle(self, response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or not body.get("success", False):
            message = body.get("error")
            if not message and body.get("errors"):
                message = "; ".join(f"{e['field']}: {e['message']}" for e in body["errors"])
            raise DashboardError(message or f"API returned {response.status_code}", response.status_code)
        return body

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session.get(self._url(path), params=params, headers=self._headers(), timeout=self.timeout)
        return self._handle(response)

    # ---------- Session ----------

    def health(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=5)
        except requests.RequestException:
            return False
        return response.status_code == 200

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Sign in and keep the token. Non-admin accounts are rejected."""
        response = self.session.post(
            self._url("/auth/login"),
            json={"email": email, "password": password},
            timeout=self.timeout,
        )
        data = self._handle(response)["data"]
        if data["user"].get("role") != "admin":
            raise DashboardError("Admin access required", 403)
        self.token = data["token"]
        return data["user"]

    def logout(self):
        self.token = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    # ---------- Admin data ----------

    def fetch_dashboard(self) -> Dict[str, Any]:
        return self._get("/admin/dashboard")["data"]

    def fetch_users(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return self._get("/admin/users", params={"page": page, "limit": limit})

    def fetch_scans(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return self._get("/admin/scans", params={"page": page, "limit": limit})

    def fetch_metrics(self) -> Dict[str, Any]:
        return self._get("/admin/metrics")["data"]
