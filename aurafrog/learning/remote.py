"""
Remote backend client (Supabase-style REST).

Endpoints used:
    POST {url}/rest/v1/{table}                 row insert
    POST {url}/rest/v1/rpc/{function}          stored procedure call
    GET  {url}/rest/v1/{table}?{filters}       select

Every failure (HTTP status outside 2xx, timeout, connection error,
truncated or malformed response) surfaces as RemoteError; callers at the
store boundary turn it into a failed StoreResult.
"""

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional

from aurafrog.config.models import RemoteBackendConfig

FEEDBACK_TABLE = "af_feedback"
PATTERNS_TABLE = "af_learned_patterns"
WORKFLOW_EVENTS_TABLE = "af_workflow_events"
WORKFLOW_METRICS_TABLE = "af_workflow_metrics"
AGENT_PERFORMANCE_TABLE = "af_agent_performance"
PATTERN_UPSERT_RPC = "update_pattern_frequency"
FEEDBACK_SUMMARY_VIEW = "v_feedback_summary"
AGENT_SUCCESS_VIEW = "v_agent_success_rates"
SUGGESTIONS_VIEW = "v_improvement_suggestions"

_MAX_ERROR_BODY = 300


class RemoteError(Exception):
    """Raised when a backend request fails for any reason."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RemoteClient:
    """Minimal JSON client for the learning backend."""

    def __init__(self, config: RemoteBackendConfig):
        if not config.configured:
            raise RemoteError("Remote backend URL and key are both required")
        self.base_url = config.url.rstrip("/")
        self.key = config.key
        self.write_timeout = config.write_timeout
        self.read_timeout = config.read_timeout

    def _headers(self, method: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Prefer": "return=representation" if method == "POST" else "return=minimal",
        }

    def request(
        self,
        path: str,
        method: str = "POST",
        data: Optional[Any] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Perform one request and return the decoded JSON body ({} if empty)."""
        url = f"{self.base_url}/rest/v1/{path}"
        if params:
            url = f"{url}?{urllib.parse.urlencode(params)}"
        body = json.dumps(data).encode("utf-8") if data is not None else None
        timeout = self.write_timeout if method != "GET" else self.read_timeout

        req = urllib.request.Request(url, data=body, method=method, headers=self._headers(method))
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
                status = getattr(resp, "status", 200)
        except urllib.error.HTTPError as e:
            detail = ""
            try:
                detail = e.read().decode("utf-8", errors="replace")[:_MAX_ERROR_BODY]
            except OSError:
                pass
            raise RemoteError(f"Backend error {e.code}: {detail}", status=e.code) from e
        except urllib.error.URLError as e:
            raise RemoteError(f"Backend unreachable: {e.reason}") from e
        except (OSError, ValueError, http.client.HTTPException) as e:
            raise RemoteError(f"Backend request failed: {e}") from e

        if not 200 <= status < 300:
            raise RemoteError(f"Backend error {status}: {raw[:_MAX_ERROR_BODY]}", status=status)
        if not raw.strip():
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return {"raw": raw}

    def insert(self, table: str, row: Dict[str, Any]) -> Any:
        return self.request(table, "POST", row)

    def rpc(self, function: str, params: Dict[str, Any]) -> Any:
        return self.request(f"rpc/{function}", "POST", params)

    def select(self, table: str, params: Optional[Dict[str, str]] = None) -> Any:
        return self.request(table, "GET", None, params or {"select": "*"})
