from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import models
from domain.prices import PriceRecord
from domain.users import User, UserAlreadyExistsError

DEDUP_KEY = ("source", "symbol", "ts_bucket")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PriceRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_ignoring_duplicates(self, records: Sequence[PriceRecord]) -> int:
        """Insert all records in one statement, silently skipping dedup-key collisions.

        Returns the number of rows actually inserted.
        """
        if not records:
            return 0

        rows: list[dict[str, Any]] = [record.model_dump(exclude={"id"}) for record in records]
        stmt = self._insert_stmt().values(rows)
        stmt = stmt.on_conflict_do_nothing(index_elements=list(DEDUP_KEY)).returning(models.PriceRecordOrm.id)
        try:
            inserted_ids = self._session.execute(stmt).scalars().all()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return len(inserted_ids)

    def list(self, source: str | None = None) -> list[PriceRecord]:
        stmt = select(models.PriceRecordOrm).order_by(models.PriceRecordOrm.ts_bucket, models.PriceRecordOrm.id)
        if source is not None:
            stmt = stmt.where(models.PriceRecordOrm.source == source)
        return [self._to_domain(row) for row in self._session.execute(stmt).scalars().all()]

    def count(self) -> int:
        return self._session.scalar(select(func.count()).select_from(models.PriceRecordOrm)) or 0

    def _insert_stmt(self) -> Any:
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(models.PriceRecordOrm)
        if dialect == "sqlite":
            return sqlite.insert(models.PriceRecordOrm)
        msg = f"Unsupported database dialect for conflict-ignoring inserts: {dialect}"
        raise NotImplementedError(msg)

    @staticmethod
    def _to_domain(row: models.PriceRecordOrm) -> PriceRecord:
        return PriceRecord(
            id=row.id,
            source=row.source,
            symbol=row.symbol,
            coin_id=row.coin_id,
            name=row.name,
            price=row.price,
            market_cap=row.market_cap,
            pct_change_24h=row.pct_change_24h,
            ts=_as_utc(row.ts),
            ts_bucket=_as_utc(row.ts_bucket),
        )


class UserRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, user: User) -> User:
        orm_user = models.UserOrm(
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )
        self._session.add(orm_user)
        try:
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            message = str(exc.orig).lower()
            if "username" in message:
                raise UserAlreadyExistsError(f"Username already exists: {user.username}") from exc
            if "email" in message:
                raise UserAlreadyExistsError(f"Email already exists: {user.email}") from exc
            raise
        self._session.refresh(orm_user)
        return self._to_domain(orm_user)

    def get(self, user_id: int) -> User | None:
        orm_user = self._session.get(models.UserOrm, user_id)
        if orm_user is None:
            return None
        return self._to_domain(orm_user)

    def get_by_username(self, username: str) -> User | None:
        stmt = select(models.UserOrm).where(models.UserOrm.username == username)
        orm_user = self._session.execute(stmt).scalar_one_or_none()
        return self._to_domain(orm_user) if orm_user is not None else None

    def get_by_email(self, email: str) -> User | None:
        stmt = select(models.UserOrm).where(models.UserOrm.email == email)
        orm_user = self._session.execute(stmt).scalar_one_or_none()
        return self._to_domain(orm_user) if orm_user is not None else None

    def list(self) -> list[User]:
        stmt = select(models.UserOrm).order_by(models.UserOrm.created_at.desc(), models.UserOrm.id.desc())
        return [self._to_domain(orm_user) for orm_user in self._session.execute(stmt).scalars().all()]

    @staticmethod
    def _to_domain(orm_user: models.UserOrm) -> User:
        return User(
            id=orm_user.id,
            username=orm_user.username,
            email=orm_user.email,
            first_name=orm_user.first_name,
            last_name=orm_user.last_name,
            created_at=_as_utc(orm_user.created_at),
            updated_at=_as_utc(orm_user.updated_at),
        )
