"""Base repository class."""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from solarops.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Repository over one model.

    Subclasses set ``model`` and, when they support upserts, ``natural_key``:
    the columns of the model's unique constraint that identify a vendor
    record.
    """

    model: type[ModelT]
    natural_key: tuple[str, ...] = ()

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, id: int) -> ModelT | None:
        return self.session.get(self.model, id)

    def get_all(self) -> list[ModelT]:
        return list(self.session.scalars(select(self.model)).all())

    def add(self, instance: ModelT) -> ModelT:
        """Add a record and flush so its primary key is assigned."""
        self.session.add(instance)
        self.session.flush()
        return instance

    def add_all(self, instances: list[ModelT]) -> list[ModelT]:
        self.session.add_all(instances)
        self.session.flush()
        return instances

    def delete(self, instance: ModelT) -> None:
        self.session.delete(instance)
        self.session.flush()

    def upsert_rows(self, rows: Sequence[dict[str, Any]]) -> None:
        """Insert or update rows on ``natural_key`` in a single statement.

        The rows succeed or fail together. Key columns, ``id`` and
        ``created_at`` are never overwritten; ``updated_at`` is bumped.

        Args:
            rows: Column dictionaries sharing the same keys.
        """
        if not rows:
            return

        keep = {"id", "created_at", *self.natural_key}
        columns = [c for c in rows[0] if c not in keep]
        dialect = self.session.get_bind().dialect.name

        if dialect in ("mysql", "mariadb"):
            stmt = mysql_insert(self.model).values(list(rows))
            changes = {c: stmt.inserted[c] for c in columns}
            changes["updated_at"] = func.now()
            stmt = stmt.on_duplicate_key_update(**changes)
        else:
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(self.model).values(list(rows))
            changes = {c: stmt.excluded[c] for c in columns}
            changes["updated_at"] = func.now()
            stmt = stmt.on_conflict_do_update(index_elements=list(self.natural_key), set_=changes)

        self.session.execute(stmt)
        self.session.flush()

        # Core statements bypass the identity map
        for instance in list(self.session.identity_map.values()):
            if isinstance(instance, self.model):
                self.session.expire(instance)
