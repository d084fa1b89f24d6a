"""
Callback correlation.

Keeps one DeployResult per (task id, operation). Results start pending when
an operation is submitted and move to a terminal status exactly once, either
from a local back-end's return value or from a webhook callback of the
remote back-end. Later completions for the same pair are discarded.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from iacflow.deployment.exceptions import DeploymentError, OperationAlreadyRegisteredError
from iacflow.deployment.models import (
    STATE_FILE_NAME,
    CallbackOutcome,
    DeployOperation,
    DeployResult,
)
from iacflow.deployment.state import StateExtractor

logger = structlog.get_logger(__name__)

ResultListener = Callable[[DeployOperation, DeployResult], None]


@dataclass
class _Entry:
    operation: DeployOperation
    result: DeployResult
    registered_at: datetime
    completed_at: datetime | None = None


class CallbackCorrelator:
    """Correlation table between submitted operations and their completion."""

    def __init__(self, state_extractor: StateExtractor | None = None) -> None:
        self.state_extractor = state_extractor or StateExtractor()
        self._entries: dict[tuple[str, DeployOperation], _Entry] = {}
        self._lock = threading.Lock()
        self._listeners: list[ResultListener] = []

    def subscribe(self, listener: ResultListener) -> None:
        """Call listener once for every terminal transition."""
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def register(self, task_id: str | UUID, operation: DeployOperation) -> DeployResult:
        """
        Record a submitted operation as pending.

        A failed operation may be registered again (retry); the new pending
        entry replaces the failed one.

        Raises:
            OperationAlreadyRegisteredError: If the operation is pending or
                succeeded for the task
        """
        key = (str(task_id), operation)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and existing.result.status != operation.failed_status:
                raise OperationAlreadyRegisteredError(str(task_id), operation.value)
            result = DeployResult(id=UUID(str(task_id)), status=operation.pending_status)
            self._entries[key] = _Entry(
                operation=operation, result=result, registered_at=datetime.now(UTC)
            )
        logger.debug("callback.registered", task_id=str(task_id), operation=operation.value)
        return result.model_copy(deep=True)

    def get_result(
        self, task_id: str | UUID, operation: DeployOperation | None = None
    ) -> DeployResult | None:
        """Current result; without an operation the most recently registered one."""
        with self._lock:
            entry = self._find(str(task_id), operation)
            return entry.result.model_copy(deep=True) if entry else None

    def forget(self, task_id: str | UUID, operation: DeployOperation | None = None) -> None:
        """Drop entries of a task, e.g. after a submission that never reached the back-end."""
        with self._lock:
            for key in [key for key in self._entries if key[0] == str(task_id)]:
                if operation is None or key[1] is operation:
                    del self._entries[key]

    def _find(self, task_id: str, operation: DeployOperation | None) -> _Entry | None:
        if operation is not None:
            return self._entries.get((task_id, operation))
        candidates = [e for key, e in self._entries.items() if key[0] == task_id]
        if not candidates:
            return None
        pending = [e for e in candidates if not e.result.is_terminal]
        return max(pending or candidates, key=lambda e: e.registered_at)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def complete(
        self, task_id: str | UUID, result: DeployResult, operation: DeployOperation | None = None
    ) -> DeployResult | None:
        """
        Move a pending entry to the given terminal result.

        Returns:
            The stored result, or None when the entry is unknown or already
            terminal (stale or duplicate completion)
        """
        if not result.is_terminal:
            raise ValueError("complete() needs a terminal result")

        task_id = str(task_id)
        with self._lock:
            entry = self._find(task_id, operation)
            if entry is None:
                logger.warning("callback.discarded.unknown_task", task_id=task_id)
                return None
            if entry.result.is_terminal:
                logger.warning(
                    "callback.discarded.duplicate",
                    task_id=task_id,
                    operation=entry.operation.value,
                    status=entry.result.status.value if entry.result.status else None,
                )
                return None
            entry.result = result.model_copy(deep=True)
            entry.completed_at = datetime.now(UTC)
            stored = entry.result.model_copy(deep=True)
            op = entry.operation

        logger.info(
            "callback.completed",
            task_id=task_id,
            operation=op.value,
            status=stored.status.value if stored.status else None,
        )
        for listener in self._listeners:
            try:
                listener(op, stored.model_copy(deep=True))
            except Exception as e:
                logger.error("callback.listener_failed", task_id=task_id, error=str(e))
        return stored

    def apply_callback(
        self,
        task_id: str | UUID,
        outcome: CallbackOutcome,
        operation: DeployOperation | None = None,
    ) -> DeployResult | None:
        """
        Apply a webhook outcome to the pending task.

        Unknown task ids and already terminal tasks are logged and discarded;
        a task is never created from a callback.
        """
        task_id = str(task_id)
        with self._lock:
            entry = self._find(task_id, operation)
            op = entry.operation if entry else None
            terminal = entry.result.is_terminal if entry else False

        if entry is None or op is None:
            logger.warning(
                "callback.discarded.unknown_task",
                task_id=task_id,
                operation=operation.value if operation else None,
            )
            return None
        if terminal:
            logger.warning("callback.discarded.duplicate", task_id=task_id, operation=op.value)
            return None

        return self.complete(task_id, self._build_result(task_id, op, outcome), op)

    def _build_result(
        self, task_id: str, operation: DeployOperation, outcome: CallbackOutcome
    ) -> DeployResult:
        if not outcome.command_successful:
            return DeployResult(
                id=UUID(task_id),
                status=operation.failed_status,
                message=outcome.diagnostics() or operation.failed_status.value,
            )

        result = DeployResult(
            id=UUID(task_id),
            status=operation.success_status,
            message=operation.success_status.value,
        )
        state = outcome.terraform_state
        if state is None:
            return result

        result.private_properties[STATE_FILE_NAME] = state
        try:
            if operation is DeployOperation.DEPLOY:
                result.resources = self.state_extractor.extract_resources(state)
            result.properties = self.state_extractor.extract_outputs(state)
        except DeploymentError as e:
            logger.error("callback.state_unparsed", task_id=task_id, error=e.message)
        result.properties.update(outcome.import_variables)
        return result

    def expire_pending(self, older_than: timedelta) -> list[str]:
        """
        Fail pending entries registered longer ago than older_than.

        Returns:
            Ids of the tasks that were expired
        """
        cutoff = datetime.now(UTC) - older_than
        with self._lock:
            overdue = [
                (key, entry)
                for key, entry in self._entries.items()
                if not entry.result.is_terminal and entry.registered_at < cutoff
            ]

        expired = []
        for (task_id, operation), _ in overdue:
            result = DeployResult(
                id=UUID(task_id),
                status=operation.failed_status,
                message=f"No callback received within {older_than}",
            )
            if self.complete(task_id, result, operation) is not None:
                expired.append(task_id)
        if expired:
            logger.warning("callback.pending_expired", tasks=expired)
        return expired

    def purge_terminal(self, older_than: timedelta) -> int:
        """
        Drop terminal entries completed longer ago than older_than.

        Returns:
            Number of entries removed
        """
        cutoff = datetime.now(UTC) - older_than
        with self._lock:
            stale = [
                key
                for key, entry in self._entries.items()
                if entry.result.is_terminal
                and entry.completed_at is not None
                and entry.completed_at < cutoff
            ]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info("callback.terminal_purged", count=len(stale))
        return len(stale)
