# storage/entity_store.py

from typing import Callable, Dict, Generic, Iterable, List, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel

from storage.errors import NotFoundError, ValidationError
from utils.time_utils import utcnow

RecordT = TypeVar("RecordT", bound=BaseModel)


class EntityStore(Generic[RecordT]):
    """
    One growable keyed collection of records of a single type.

    Ids start at 1 and are never reused. Records are pydantic models and are
    replaced, not mutated, on update, so a record handed to a caller never
    changes underneath it.
    """

    def __init__(
        self,
        model: Type[RecordT],
        entity: str,
        required: Iterable[str] = (),
        timestamps: Iterable[str] = ("created_at",),
    ):
        self.model = model
        self.entity = entity
        self.required = tuple(required)
        self.timestamps = tuple(timestamps)
        self._records: Dict[int, RecordT] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: int) -> bool:
        return record_id in self._records

    def create(self, **fields) -> RecordT:
        for name in self.required:
            if fields.get(name) in (None, ""):
                raise ValidationError(f"{name.replace('_', ' ').capitalize()} is required")

        now = utcnow()
        for name in self.timestamps:
            if fields.get(name) is None:
                fields[name] = now

        try:
            record = self.model(id=self._next_id, **fields)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid {self.entity}: {exc.errors()[0]['msg']}") from exc

        self._next_id += 1
        self._records[record.id] = record
        return record

    def get(self, record_id: int) -> Optional[RecordT]:
        return self._records.get(record_id)

    def merge(self, record_id: int, **fields) -> RecordT:
        """Validate the record as it would be after an update, without storing it."""
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(self.entity, record_id)
        fields.pop("id", None)
        try:
            return self.model.model_validate({**record.model_dump(), **fields})
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid {self.entity}: {exc.errors()[0]['msg']}") from exc

    def update(self, record_id: int, **fields) -> RecordT:
        updated = self.merge(record_id, **fields)
        self._records[record_id] = updated
        return updated

    def delete(self, record_id: int) -> Optional[RecordT]:
        return self._records.pop(record_id, None)

    def all(self) -> List[RecordT]:
        return list(self._records.values())

    def filter(self, predicate: Callable[[RecordT], bool]) -> List[RecordT]:
        return [record for record in self._records.values() if predicate(record)]
