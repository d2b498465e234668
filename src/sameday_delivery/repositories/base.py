from typing import Any, Generic, Iterable, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Load

from sameday_delivery.core.db import Base

ModelT = TypeVar('ModelT', bound=Base)
CreateSchemaT = TypeVar('CreateSchemaT', bound=BaseModel)
UpdateSchemaT = TypeVar('UpdateSchemaT', bound=BaseModel)


class CRUDBase(Generic[ModelT, CreateSchemaT, UpdateSchemaT]):
    """Базовый класс для CRUD операций."""

    def __init__(self, model: Type[ModelT]) -> None:
        """Инициализация класса."""
        self.model = model

    async def get(
        self,
        session: AsyncSession,
        *predicates: Any,
        many: bool = False,
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
        options: Iterable[Load] = (),
        for_update: bool = False,
        **filters: Any,
    ) -> list[ModelT] | ModelT | None:
        """Универсальная выборка по равенствам полей модели.

        get(..., field=value, ...).

        Параметры:
            session: AsyncSession.
            *predicates: произвольные SQLAlchemy-условия.
            many: True вернуть список, False вернуть первый или None.
            order_by, limit: необязательные параметры выдачи.
            options: ORM-опции загрузки.
            for_update: заблокировать выбранные строки до конца транзакции.
            **filters: равенства по полям модели (field=value).

        Исключения:
            ValueError: если передан фильтр по несуществующему полю модели.
        """
        self._validate_filters(filters)
        conditions = [getattr(self.model, k) == v for k, v in filters.items()]
        conditions.extend(predicates)

        stmt = select(self.model).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit:
            stmt = stmt.limit(limit)
        if options:
            stmt = stmt.options(*options)
        if for_update:
            stmt = stmt.with_for_update()

        res = await session.execute(stmt)
        return list(res.scalars().all()) if many else res.scalars().first()

    async def create(
        self,
        obj_in: CreateSchemaT,
        session: AsyncSession,
    ) -> ModelT:
        """Создание записи в БД."""
        db_obj = self.model(**obj_in.model_dump(exclude_unset=True))
        session.add(db_obj)
        await session.commit()
        await session.refresh(db_obj)
        return db_obj

    async def update_obj(
        self,
        db_obj: ModelT,
        obj_in: UpdateSchemaT,
        session: AsyncSession,
    ) -> ModelT:
        """Обновление записи в БД."""
        update_data = obj_in.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)
        session.add(db_obj)
        await session.commit()
        await session.refresh(db_obj)
        return db_obj

    async def delete(self, db_obj: ModelT, session: AsyncSession) -> ModelT:
        """Удаление записи из БД."""
        await session.delete(db_obj)
        await session.commit()
        return db_obj

    def _validate_filters(self, filters: dict[str, Any]) -> None:
        """Валидация фильтров, примененных к get()."""
        unknown = [k for k in filters if not hasattr(self.model, k)]
        if unknown:
            raise ValueError(
                'Некорректные поля фильтра для '
                f'{self.model.__name__}: {unknown}',
            )
