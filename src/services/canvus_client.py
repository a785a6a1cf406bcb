"""Canvus REST API client implementing the batch resource primitives."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

import requests
import structlog

from src.core.errors import CanvusAPIError, MissingOperationDataError, UnsupportedOperationError
from src.models.operation import CanvasRef, UserRef, WidgetRef
from src.utils.retry import retry_with_logging

if TYPE_CHECKING:
    from types import TracebackType

    from src.models.config import Config
    from src.models.operation import ResourceRef, WidgetDeleteMetadata

logger = structlog.get_logger(__name__)

# Typed collection endpoint under canvases/{id}/ for each widget type.
WIDGET_COLLECTIONS: dict[str, str] = {
    "note": "notes",
    "image": "images",
    "pdf": "pdfs",
    "video": "videos",
    "browser": "browsers",
    "connector": "connectors",
    "anchor": "anchors",
    "videoinput": "video-inputs",
}

# Assigned by the server; never sent back when recreating a widget.
_SERVER_MANAGED_FIELDS = frozenset({"id", "state", "depth", "parent_id", "widget_type"})


def widget_collection(widget_type: str) -> str:
    """Return the collection path segment for a widget type such as "Note"."""
    key = widget_type.lower().replace("-", "").replace("_", "")
    collection = WIDGET_COLLECTIONS.get(key)
    if collection is None:
        raise UnsupportedOperationError("widget endpoint", widget_type)
    return collection


class CanvusClient:
    """Client for the Canvus REST API.

    Implements ResourceServiceProtocol. Transport failures and 429/5xx
    responses are retried with exponential backoff; other errors raise
    CanvusAPIError straight away.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        user_agent: str = "canvus-batch-python/0.1.0",
        verify_tls: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.user_id: int | None = None
        self.session = session if session is not None else requests.Session()
        self.session.headers.update(
            {
                "Private-Token": api_key,
                "User-Agent": user_agent,
                "Accept": "application/json",
            }
        )
        self.session.verify = verify_tls
        self._send = retry_with_logging(max_attempts=max_retries + 1)(self._send_once)

    @classmethod
    def from_config(cls, config: Config) -> CanvusClient:
        """Build a client from environment configuration."""
        return cls(
            config.api_url,
            config.api_key,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            user_agent=config.user_agent,
            verify_tls=config.verify_tls,
        )

    def __enter__(self) -> CanvusClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # --- Transport ---

    def _send_once(self, method: str, endpoint: str, payload: Any = None) -> Any:
        response = self.session.request(
            method,
            urljoin(self.base_url, endpoint.lstrip("/")),
            json=payload,
            timeout=self.timeout,
        )
        if not 200 <= response.status_code < 300:
            raise CanvusAPIError.from_response(response.status_code, response.text)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def request(self, method: str, endpoint: str, payload: Any = None) -> Any:
        """Send a request and return the decoded JSON body, if any.

        Raises:
            CanvusAPIError: The API answered with a non-2xx status.
            requests.RequestException: The request never got an answer.
        """
        try:
            return self._send(method, endpoint, payload)
        except (CanvusAPIError, requests.RequestException) as exc:
            logger.error(
                "canvus_request_failed",
                method=method,
                endpoint=endpoint,
                error=str(exc),
            )
            raise

    # --- Authentication ---

    def login(self, email: str, password: str) -> None:
        """Log in with credentials and switch the session to the returned token."""
        data = self.request("POST", "users/login", {"email": email, "password": password})
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            msg = "login: no token returned"
            raise CanvusAPIError(200, message=msg)
        self.session.headers["Private-Token"] = token
        user = data.get("user") or {}
        self.user_id = user.get("id")
        logger.info("canvus_logged_in", user_id=self.user_id)

    def logout(self) -> None:
        """Invalidate the current token and drop it from the session."""
        self.request("POST", "users/logout", {})
        self.session.headers.pop("Private-Token", None)
        self.user_id = None

    # --- Resource primitives ---

    def move(self, resource: ResourceRef, target: str) -> None:
        """Move a canvas into a folder, or reparent a widget under a container."""
        if isinstance(resource, CanvasRef):
            self.request("POST", f"canvases/{resource.id}/move", {"folder_id": target})
        elif isinstance(resource, WidgetRef):
            self.request(
                "PATCH",
                f"canvases/{resource.canvas_id}/widgets/{resource.id}",
                {"parent_id": target},
            )
        else:
            raise UnsupportedOperationError("move", resource.resource_type)

    def copy(self, resource: ResourceRef, target: str) -> None:
        """Copy a canvas into a folder, or recreate a widget on another canvas."""
        if isinstance(resource, CanvasRef):
            self.request("POST", f"canvases/{resource.id}/copy", {"folder_id": target})
        elif isinstance(resource, WidgetRef):
            widget = self.request("GET", f"canvases/{resource.canvas_id}/widgets/{resource.id}")
            if not isinstance(widget, dict):
                msg = f"unexpected widget payload for {resource.id!r}"
                raise CanvusAPIError(200, message=msg)
            widget_type = resource.widget_type or widget.get("widget_type")
            if not widget_type:
                msg = f"widget {resource.id!r} has no widget_type to copy with"
                raise MissingOperationDataError(msg)
            body = {k: v for k, v in widget.items() if k not in _SERVER_MANAGED_FIELDS}
            self.request("POST", f"canvases/{target}/{widget_collection(widget_type)}", body)
        else:
            raise UnsupportedOperationError("copy", resource.resource_type)

    def delete(
        self,
        resource: ResourceRef,
        metadata: WidgetDeleteMetadata | None = None,
    ) -> None:
        """Delete a canvas, a user, or a widget through its typed collection."""
        if isinstance(resource, CanvasRef):
            self.request("DELETE", f"canvases/{resource.id}")
        elif isinstance(resource, UserRef):
            self.request("DELETE", f"users/{resource.id}")
        elif isinstance(resource, WidgetRef):
            if metadata is None:
                msg = f"deleting widget {resource.id!r} requires canvas_id and widget_type"
                raise MissingOperationDataError(msg)
            collection = widget_collection(metadata.widget_type)
            self.request("DELETE", f"canvases/{metadata.canvas_id}/{collection}/{resource.id}")
        else:
            raise UnsupportedOperationError("delete", resource.resource_type)

    def pin(self, resource: WidgetRef) -> None:
        self._set_pinned(resource, pinned=True)

    def unpin(self, resource: WidgetRef) -> None:
        self._set_pinned(resource, pinned=False)

    def _set_pinned(self, resource: WidgetRef, *, pinned: bool) -> None:
        if not isinstance(resource, WidgetRef):
            raise UnsupportedOperationError("pin" if pinned else "unpin", resource.resource_type)
        self.request(
            "PATCH",
            f"canvases/{resource.canvas_id}/widgets/{resource.id}",
            {"pinned": pinned},
        )
