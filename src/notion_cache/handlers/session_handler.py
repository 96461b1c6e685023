"""HTTP handlers for the per-practitioner cache core.

Covers the reference data snapshot, the sync coordinator, the Notion
configuration probe and policy-driven edge function calls.
"""

import dataclasses
import logging
from typing import Any

from fastapi import HTTPException, status

from notion_cache.dto import (
    ConfigStatusResponse,
    FunctionCallRequest,
    FunctionCallResponse,
    NotificationItem,
    ReferenceDataResponse,
    SyncResponse,
    SyncStatusResponse,
)
from notion_cache.entities import REFERENCE_CATEGORIES, ReferenceDataSet
from notion_cache.errors import RemoteCallError
from notion_cache.policies import get_policy
from notion_cache.services import PractitionerSession, RecordingNotifier, SessionRegistry

logger = logging.getLogger(__name__)

# Python field name -> JSON name, where they differ
_RENAMED_FIELDS = {"for_": "for"}


def _record_to_dict(record: Any) -> dict[str, Any]:
    return {_RENAMED_FIELDS.get(k, k): v for k, v in dataclasses.asdict(record).items()}


def _drain_notifications(practitioner: PractitionerSession) -> list[NotificationItem]:
    notifier = practitioner.notifier
    if not isinstance(notifier, RecordingNotifier):
        return []
    items = [NotificationItem(kind=e.kind, message=e.message, at=e.at) for e in notifier.events]
    notifier.clear()
    return items


def _last_redirect(items: list[NotificationItem]) -> str | None:
    for item in reversed(items):
        if item.kind == "navigate":
            return item.message
    return None


class SessionHandler:
    """HTTP handlers for one practitioner's session services.

    Example:
        ```python
        practitioner = await registry.get_or_create(session)
        handler = SessionHandler(practitioner, registry)
        snapshot = await handler.get_reference_data()
        ```
    """

    def __init__(self, practitioner: PractitionerSession, registry: SessionRegistry) -> None:
        self._practitioner = practitioner
        self._registry = registry

    def _reference_response(self) -> ReferenceDataResponse:
        service = self._practitioner.reference_data
        snapshot: ReferenceDataSet = service.data
        return ReferenceDataResponse(
            data={
                category: [_record_to_dict(record) for record in getattr(snapshot, category)]
                for category in REFERENCE_CATEGORIES
            },
            counts=snapshot.counts,
            fetched_at=snapshot.fetched_at,
            loading=service.loading,
            error=service.error,
            needs_config=service.needs_config,
            is_cached=service.is_cached,
        )

    async def get_reference_data(self) -> ReferenceDataResponse:
        """Handle GET /reference-data requests."""
        return self._reference_response()

    async def refresh_reference_data(self) -> ReferenceDataResponse:
        """Handle POST /reference-data/refresh requests."""
        await self._practitioner.reference_data.refetch_all()
        return self._reference_response()

    async def get_sync_status(self) -> SyncStatusResponse:
        """Handle GET /sync/status requests."""
        return SyncStatusResponse(**self._practitioner.sync.to_dict())

    async def sync(self, sync_type: str = "all") -> SyncResponse:
        """Handle POST /sync requests.

        A request arriving while a sync runs is dropped, not queued.
        """
        triggered = await self._practitioner.sync.handle_sync(sync_type)
        return SyncResponse(
            **self._practitioner.sync.to_dict(),
            triggered=triggered,
            notifications=_drain_notifications(self._practitioner),
        )

    async def get_config_status(self) -> ConfigStatusResponse:
        """Handle GET /config/status requests.

        Always probes the remote; the answer is never cached.
        """
        probe = self._practitioner.config_probe
        session = self._practitioner.sessions.current
        if session is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        try:
            await probe.check(session)
        except RemoteCallError as e:
            logger.warning("Config probe failed for %s: %s", session.user_id, e.message)
        return ConfigStatusResponse(is_configured=bool(probe.is_configured), error=probe.error)

    async def call_function(self, function_name: str, request: FunctionCallRequest) -> FunctionCallResponse:
        """Handle POST /functions/{function_name} requests.

        Raises:
            HTTPException: 404 for an unknown function, 422 if the payload
                lacks a field the cache key needs
        """
        policy = get_policy(function_name)
        if policy is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown edge function: {function_name}",
            )

        try:
            executor = await self._practitioner.call(policy, request.payload)
        except KeyError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(e.args[0]) if e.args else str(e),
            ) from e

        state = executor.state
        notifications = _drain_notifications(self._practitioner)
        return FunctionCallResponse(
            function_name=function_name,
            data=state.data,
            is_cached=state.is_cached,
            error=state.error,
            error_code=state.error_code,
            needs_config=state.needs_config,
            redirect=_last_redirect(notifications),
            notifications=notifications,
        )

    async def logout(self) -> dict:
        """Handle POST /logout requests.

        Tears down the session services; cached entries stay in the store
        for the next login.
        """
        user_id = self._practitioner.user_id
        self._registry.dispose(user_id)
        return {"success": True, "message": f"Session for {user_id} disposed"}
