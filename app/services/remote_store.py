# app/services/remote_store.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.extensions import db
from app.utils.logging import get_logger

logger = get_logger("remote_store")


class RemoteStoreError(Exception):
    pass


class NotFoundError(RemoteStoreError):
    pass


class DuplicateSerialError(RemoteStoreError):
    pass


def _is_serial_conflict(err: IntegrityError) -> bool:
    # Postgres reporta el nombre del constraint, SQLite las columnas
    msg = str(getattr(err, "orig", err))
    return "uq_jobs_owner_serial" in msg or "jobs.serial" in msg


class OwnedTable:
    """
    CRUD sobre una tabla, siempre filtrado por owner (aislamiento por fila).

    Todas las operaciones o devuelven datos o lanzan RemoteStoreError;
    la sesión se hace rollback antes de relanzar.
    """

    def __init__(self, model, owner: str):
        if not owner:
            raise RemoteStoreError("No owner resolved for table access")
        self.model = model
        self.owner = owner

    def _query(self, **filters):
        return self.model.query.filter_by(owner=self.owner, **filters)

    def _fail(self, op: str, err: Exception) -> None:
        db.session.rollback()
        logger.error(
            f"Remote {op} failed table={self.model.__tablename__} owner={self.owner} error={err}"
        )

    def select(self, order_by: Optional[str] = None, descending: bool = False, **filters) -> List[Dict[str, Any]]:
        try:
            q = self._query(**filters)
            if order_by:
                col = getattr(self.model, order_by)
                q = q.order_by(col.desc() if descending else col.asc())
            return [row.to_dict() for row in q.all()]
        except SQLAlchemyError as e:
            self._fail("select", e)
            raise RemoteStoreError(str(e)) from e

    def single(self, **filters) -> Dict[str, Any]:
        rows = self.select(**filters)
        if not rows:
            raise NotFoundError(f"{self.model.__tablename__}: no row for {filters}")
        return rows[0]

    def insert(self, values: Dict[str, Any]) -> Dict[str, Any]:
        row = self.model(**{**values, "owner": self.owner})
        try:
            db.session.add(row)
            db.session.commit()
            return row.to_dict()
        except IntegrityError as e:
            self._fail("insert", e)
            if _is_serial_conflict(e):
                raise DuplicateSerialError(f"serial {values.get('serial')} already used") from e
            raise RemoteStoreError(str(e)) from e
        except SQLAlchemyError as e:
            self._fail("insert", e)
            raise RemoteStoreError(str(e)) from e

    def update(self, values: Dict[str, Any], **filters) -> int:
        try:
            n = self._query(**filters).update(values, synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as e:
            self._fail("update", e)
            raise RemoteStoreError(str(e)) from e

        if n == 0:
            raise NotFoundError(f"{self.model.__tablename__}: no row for {filters}")
        return n

    def delete(self, **filters) -> int:
        try:
            n = self._query(**filters).delete(synchronize_session=False)
            db.session.commit()
            return n
        except SQLAlchemyError as e:
            self._fail("delete", e)
            raise RemoteStoreError(str(e)) from e
