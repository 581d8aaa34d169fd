import logging
import threading
from typing import Dict, List, Optional, Protocol

from bikelane_sentinel.core.exceptions import ViolationNotFoundError
from bikelane_sentinel.schemas.violation import Violation, ViolationStatus

logger = logging.getLogger(__name__)


class ViolationStore(Protocol):
    """Storage collaborator for violation records, keyed by violation id."""

    def add(self, violation: Violation) -> Violation: ...

    def get(self, violation_id: str) -> Optional[Violation]: ...

    def list(self) -> List[Violation]: ...

    def update_status(self, violation_id: str, status: ViolationStatus) -> Violation: ...

    def __len__(self) -> int: ...


class InMemoryViolationStore:
    """
    Process-lifetime violation store.

    Records live in a plain dict and are lost when the process exits. Every
    operation holds the lock, so sync routes running in the threadpool cannot
    lose updates.
    """

    def __init__(self):
        self._violations: Dict[str, Violation] = {}
        self._lock = threading.RLock()

    def add(self, violation: Violation) -> Violation:
        with self._lock:
            self._violations[violation.id] = violation
        logger.info("Stored violation %s (%s)", violation.id, violation.vehicle_type)
        return violation

    def get(self, violation_id: str) -> Optional[Violation]:
        with self._lock:
            return self._violations.get(violation_id)

    def list(self) -> List[Violation]:
        """All violations, newest first."""
        with self._lock:
            violations = list(self._violations.values())
        return sorted(violations, key=lambda v: v.timestamp, reverse=True)

    def update_status(self, violation_id: str, status: ViolationStatus) -> Violation:
        with self._lock:
            violation = self._violations.get(violation_id)
            if violation is None:
                raise ViolationNotFoundError(violation_id)

            if violation.status != status:
                violation = violation.model_copy(update={"status": status})
                self._violations[violation_id] = violation
                logger.info("Violation %s moved to status '%s'", violation_id, status.value)

            return violation

    def __len__(self) -> int:
        with self._lock:
            return len(self._violations)
