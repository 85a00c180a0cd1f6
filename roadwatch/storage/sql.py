"""
SQL document store backed by SQLAlchemy.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Type

from sqlalchemy import and_, false, inspect, or_, text, true
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..core.errors import StorageError
from ..models import Base, BusImage, BusLog, OtherLog, User, VehicleLog
from .base import Document, DocumentStore, Filter, Sort


logger = logging.getLogger("storage")

COLLECTION_MODELS: Dict[str, Type[Base]] = {
    "buses": BusLog,
    "vehicles": VehicleLog,
    "others": OtherLog,
    "bus_images": BusImage,
    "users": User,
}


def _field_map(model: Type[Base]) -> Dict[str, str]:
    """Map document keys (column names) to mapped attribute names."""
    return {attr.columns[0].name: attr.key for attr in inspect(model).column_attrs}


class SqlDocumentStore(DocumentStore):
    backend = "sql"

    def __init__(self, engine: Engine | None = None) -> None:
        if engine is None:
            from ..core.db import SessionLocal, engine as default_engine

            self.engine = default_engine
            self._session_factory = SessionLocal
        else:
            self.engine = engine
            self._session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)

    def _model(self, collection: str) -> Type[Base]:
        model = COLLECTION_MODELS.get(collection)
        if model is None:
            raise StorageError(f"Unknown collection {collection}", collection=collection)
        return model

    def _to_document(self, row: Base) -> Document:
        doc: Document = {}
        for name, attr in _field_map(type(row)).items():
            doc[name] = getattr(row, attr)
        doc["id"] = str(doc["id"])
        return doc

    def _clause(self, model: Type[Base], flt: Optional[Filter]):
        fields = _field_map(model)
        clauses = []
        for key, value in (flt or {}).items():
            if key == "$or":
                clauses.append(or_(*[self._clause(model, sub) for sub in value]) if value else false())
                continue
            attr = fields.get(key)
            if attr is None:
                # Missing fields only ever equal null.
                matches_null = value is None or (isinstance(value, (list, tuple, set)) and None in value)
                clauses.append(true() if matches_null else false())
                continue
            column = getattr(model, attr)
            if key == "id" and value is not None and not isinstance(value, (list, tuple, set)):
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    clauses.append(false())
                    continue
            if isinstance(value, (list, tuple, set)):
                present = [v for v in value if v is not None]
                parts = []
                if present:
                    parts.append(column.in_(present))
                if len(present) != len(value):
                    parts.append(column.is_(None))
                clauses.append(or_(*parts) if parts else false())
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        if not clauses:
            return true()
        return and_(*clauses)

    def _order_by(self, model: Type[Base], sort: Optional[Sort]) -> list:
        fields = _field_map(model)
        order = []
        for key, direction in sort or ():
            attr = fields.get(key)
            if attr is None:
                continue
            column = getattr(model, attr)
            order.append(column.desc() if direction < 0 else column.asc())
        return order

    def insert(self, collection: str, record: Mapping[str, Any]) -> str:
        model = self._model(collection)
        fields = _field_map(model)
        values = {fields[key]: value for key, value in record.items() if key in fields and key != "id"}
        ignored = sorted(set(record) - set(fields))
        if ignored:
            logger.debug("Ignoring unmapped fields collection=%s fields=%s", collection, ignored)
        try:
            with self._session_factory() as db:
                row = model(**values)
                db.add(row)
                db.commit()
                db.refresh(row)
                return str(row.id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Insert into {collection} failed: {exc}", collection=collection) from exc

    def find(
        self,
        collection: str,
        filter: Optional[Filter] = None,
        *,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                query = db.query(model).filter(self._clause(model, filter))
                order = self._order_by(model, sort)
                if order:
                    query = query.order_by(*order)
                if skip:
                    query = query.offset(skip)
                if limit is not None:
                    query = query.limit(limit)
                return [self._to_document(row) for row in query.all()]
        except SQLAlchemyError as exc:
            raise StorageError(f"Query on {collection} failed: {exc}", collection=collection) from exc

    def find_one(self, collection: str, filter: Filter, sort: Optional[Sort] = None) -> Optional[Document]:
        rows = self.find(collection, filter, sort=sort, limit=1)
        return rows[0] if rows else None

    def count(self, collection: str, filter: Optional[Filter] = None) -> int:
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                return db.query(model).filter(self._clause(model, filter)).count()
        except SQLAlchemyError as exc:
            raise StorageError(f"Count on {collection} failed: {exc}", collection=collection) from exc

    def update_one(self, collection: str, filter: Filter, values: Mapping[str, Any]) -> bool:
        model = self._model(collection)
        fields = _field_map(model)
        try:
            with self._session_factory() as db:
                row = db.query(model).filter(self._clause(model, filter)).first()
                if row is None:
                    return False
                for key, value in values.items():
                    if key in fields and key != "id":
                        setattr(row, fields[key], value)
                db.commit()
                return True
        except SQLAlchemyError as exc:
            raise StorageError(f"Update on {collection} failed: {exc}", collection=collection) from exc

    def delete_many(self, collection: str, filter: Filter) -> int:
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                deleted = (
                    db.query(model)
                    .filter(self._clause(model, filter))
                    .delete(synchronize_session=False)
                )
                db.commit()
                return int(deleted or 0)
        except SQLAlchemyError as exc:
            raise StorageError(f"Delete on {collection} failed: {exc}", collection=collection) from exc

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning("Database ping failed: %s", exc)
            return False

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Schema creation failed: {exc}") from exc
