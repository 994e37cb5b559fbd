"""Clients for the remote action logging endpoint.

The endpoint accepts ``{testId, variant, actionType, visitorId}`` and reports
success or failure. A failed call raises :class:`ActionLogError`; callers in
this package never retry.
"""

import abc
from typing import Callable, Optional

import httpx
from sqlalchemy.orm import Session

from abbanner.core.settings import config_settings
from abbanner.models.schemas.action_log import ActionLogCreateModel


class ActionLogError(RuntimeError):
    """The logging endpoint rejected the action or could not be reached."""


class ActionLogger(abc.ABC):
    @abc.abstractmethod
    def log_action(self, payload: ActionLogCreateModel) -> None:
        ...

    def close(self) -> None:
        """Releases connections held by the logger."""


class HttpActionLogger(ActionLogger):
    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.token = token
        self.client = client or httpx.Client(timeout=timeout)

    def log_action(self, payload: ActionLogCreateModel) -> None:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = self.client.post(
                self.url,
                content=payload.model_dump_json(by_alias=True),
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ActionLogError(f"Logging request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            # endpoints that answer 2xx without a JSON body count as success
            return
        if isinstance(body, dict) and body.get("success") is False:
            raise ActionLogError(f"Logging endpoint reported failure: {body}")

    def close(self) -> None:
        self.client.close()


class RepositoryActionLogger(ActionLogger):
    """Records actions in-process, one short-lived session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def log_action(self, payload: ActionLogCreateModel) -> None:
        # Imported here to keep the service <-> logger modules acyclic
        from abbanner.services.action_log_service import ActionLogService

        db = self.session_factory()
        try:
            ActionLogService(db).record_action(payload)
        except Exception as e:
            raise ActionLogError(f"Failed to record action: {e}") from e
        finally:
            db.close()


def build_action_logger(session_factory: Callable[[], Session]) -> ActionLogger:
    """HTTP logger when LOG_ACTION_URL is configured, in-process otherwise."""
    if config_settings.LOG_ACTION_URL:
        return HttpActionLogger(
            url=config_settings.LOG_ACTION_URL,
            token=config_settings.LOG_ACTION_TOKEN or None,
            timeout=config_settings.LOG_ACTION_TIMEOUT,
        )
    return RepositoryActionLogger(session_factory)
