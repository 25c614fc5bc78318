from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import CliConfig
from .errors import AuthError, NotFoundError, UpstreamError, ValidationError

ERRORS_BY_STATUS = {
    400: ValidationError,
    401: AuthError,
    404: NotFoundError,
    422: ValidationError,
}


class TodoClient:
    """Synchronous client for the task API used by the CLI"""

    def __init__(self, config: CliConfig, timeout: float = 15.0,
                 transport: Optional[httpx.BaseTransport] = None):
        headers = {}
        if config.uses_token:
            headers["Authorization"] = f"Bearer {config.token}"
        else:
            headers["Authorization"] = f"Bearer {config.service_key}"
            headers["X-User-Id"] = config.user_id

        self._http = httpx.Client(
            base_url=f"{config.api_url}/api",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        try:
            response = self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Could not reach {self._http.base_url}: {e}") from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError("Malformed response from server") from e

        error_class = ERRORS_BY_STATUS.get(response.status_code, UpstreamError)
        raise error_class(_detail(response))

    def verify(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/verify")

    def add(self, words: Sequence[str]) -> Dict[str, Any]:
        return self._request("POST", "/tasks", json={"words": list(words)})

    def list_pending(self) -> List[Dict[str, Any]]:
        body = self._request("GET", "/tasks")
        if not isinstance(body, dict) or not isinstance(body.get("tasks"), list):
            raise UpstreamError("Malformed response from server")
        return body["tasks"]

    def done(self, task_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/tasks/{task_id}/done")

    def snooze(self, task_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/tasks/{task_id}/snooze")

    def subtask(self, parent_id: int, words: Sequence[str]) -> Dict[str, Any]:
        return self._request("POST", f"/tasks/{parent_id}/subtasks", json={"words": list(words)})


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None

    if isinstance(detail, str):
        return detail
    if detail:
        # FastAPI request validation errors come as a list
        return "; ".join(str(item.get("msg", item)) for item in detail if isinstance(item, dict)) or str(detail)
    return f"HTTP {response.status_code}"

