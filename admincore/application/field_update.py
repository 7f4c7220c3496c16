"""Single-field edits with table-driven fallback encodings."""
from __future__ import annotations

from typing import Any, Iterable

from admincore.application.session import SessionGuard
from admincore.application.store import OptimisticStateStore
from admincore.core.encodings import CandidateTable
from admincore.core.errors import AdminError, FieldUpdateError, ValidationError
from admincore.domain import FieldUpdateAttempt, Record
from admincore.infrastructure.collaborators import FieldUpdate
from admincore.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_EDITABLE_FIELDS = ("name", "email", "phone", "address", "role")
# Sent along with every edit when the cached record already holds a value.
SIBLING_FIELDS = ("phone", "address")


class FieldUpdateRetrier:
    def __init__(
        self,
        field_update: FieldUpdate,
        store: OptimisticStateStore,
        *,
        candidates: CandidateTable | None = None,
        session: SessionGuard | None = None,
        editable_fields: Iterable[str] = DEFAULT_EDITABLE_FIELDS,
    ) -> None:
        self._field_update = field_update
        self._store = store
        self._candidates = candidates or CandidateTable()
        self._session = session or SessionGuard()
        self.editable_fields = tuple(editable_fields)

    def build_payload(self, record_id: str, field: str, value: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": record_id, field: value}
        record = self._store.get(record_id)
        if record is not None:
            for sibling in SIBLING_FIELDS:
                if sibling != field and record.has_value(sibling):
                    payload[sibling] = record.get(sibling)
        return payload

    async def save(self, record_id: str, field: str, value: Any) -> Record:
        """Persist one field, walking the candidate encodings on validation errors.

        Each candidate is tried at most once and in table order; once the
        table is exhausted a :class:`FieldUpdateError` naming the original
        value is raised.
        """

        if field not in self.editable_fields:
            raise ValueError(f"{field!r} is not editable; expected one of {', '.join(self.editable_fields)}")

        attempt = FieldUpdateAttempt(field, value, self._candidates.candidates_for(field, value))
        while True:
            payload = self.build_payload(record_id, field, attempt.value)
            try:
                record = await self._field_update(record_id, payload)
            except ValidationError as exc:
                if not exc.names_field(field) or attempt.max_attempts == 1:
                    raise
                if not attempt.has_next:
                    logger.warning("All encodings of %s=%r were rejected for %s", field, value, record_id)
                    raise FieldUpdateError(field, value, attempt.tried) from exc
                attempt = attempt.advance()
                logger.info("Retrying %s for %s with %r (attempt %s/%s)", field, record_id, attempt.value, attempt.attempt_index + 1, attempt.max_attempts)
                continue
            except AdminError as exc:
                self._session.check(exc)
                raise

            self._store.replace(record)
            return record
