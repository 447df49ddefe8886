import copy
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from office_core.core.db import Base, build_engine, build_session_factory
from office_core.core.errors import StorageUnavailable, StorageWriteFailed
from office_core.db.models.record import StoredRecord

logger = logging.getLogger(__name__)

DOCUMENTS = "documents"
SETTINGS = "settings"

# Раздел -> поле записи, по которому она хранится
PARTITIONS = {
    DOCUMENTS: "id",
    SETTINGS: "id",
}


class KeyedStore:
    """Персистентное key-value хранилище с разделами (documents, settings)

    Каждая операция выполняется в собственной транзакции: запись
    заменяется целиком, межзаписных транзакций нет.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)
        self._ready = False

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "KeyedStore":
        """Создание хранилища по URL базы"""
        return cls(build_engine(database_url, echo=echo))

    async def initialize(self) -> None:
        """Создание схемы; без этого остальные операции недоступны"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Storage initialization failed: %s", exc)
            raise StorageUnavailable(f"Cannot open storage: {exc}") from exc
        self._ready = True
        logger.info("Storage ready at %s", self.engine.url)

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def put(self, partition: str, record: Dict[str, Any]) -> None:
        """Вставка или полная замена записи"""
        key = self._key_of(partition, record)
        factory = self._require_ready()
        payload = copy.deepcopy(record)

        try:
            async with factory() as session:
                await session.merge(StoredRecord(partition=partition, key=key, payload=payload))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Write to %s/%s failed: %s", partition, key, exc)
            raise StorageWriteFailed(f"Cannot write {partition}/{key}: {exc}") from exc

    async def get(self, partition: str, key: str) -> Optional[Dict[str, Any]]:
        """Получение записи по ключу"""
        self._check_partition(partition)
        factory = self._require_ready()

        try:
            async with factory() as session:
                db_record = await session.get(StoredRecord, (partition, key))
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Cannot read {partition}/{key}: {exc}") from exc

        return copy.deepcopy(db_record.payload) if db_record else None

    async def get_all(self, partition: str) -> List[Dict[str, Any]]:
        """Все записи раздела"""
        self._check_partition(partition)
        factory = self._require_ready()

        try:
            async with factory() as session:
                result = await session.execute(
                    select(StoredRecord.payload).where(StoredRecord.partition == partition)
                )
                payloads = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StorageUnavailable(f"Cannot read {partition}: {exc}") from exc

        return [copy.deepcopy(payload) for payload in payloads]

    async def delete(self, partition: str, key: str) -> bool:
        """Удаление записи; отсутствие записи ошибкой не считается"""
        self._check_partition(partition)
        factory = self._require_ready()

        try:
            async with factory() as session:
                result = await session.execute(
                    delete(StoredRecord).where(
                        StoredRecord.partition == partition,
                        StoredRecord.key == key
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Delete of %s/%s failed: %s", partition, key, exc)
            raise StorageWriteFailed(f"Cannot delete {partition}/{key}: {exc}") from exc

        return result.rowcount > 0

    async def clear(self, partition: str) -> int:
        """Очистка раздела целиком"""
        self._check_partition(partition)
        factory = self._require_ready()

        try:
            async with factory() as session:
                result = await session.execute(
                    delete(StoredRecord).where(StoredRecord.partition == partition)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error("Clearing %s failed: %s", partition, exc)
            raise StorageWriteFailed(f"Cannot clear {partition}: {exc}") from exc

        logger.info("Cleared partition %s (%d records)", partition, result.rowcount)
        return result.rowcount

    async def dispose(self) -> None:
        """Освобождение движка"""
        self._ready = False
        await self.engine.dispose()

    def _require_ready(self):
        if not self._ready:
            raise StorageUnavailable("Storage is not initialized")
        return self._session_factory

    @staticmethod
    def _check_partition(partition: str) -> str:
        if partition not in PARTITIONS:
            raise KeyError(f"Unknown partition: {partition}")
        return PARTITIONS[partition]

    def _key_of(self, partition: str, record: Dict[str, Any]) -> str:
        key_field = self._check_partition(partition)
        key = record.get(key_field)
        if not key:
            raise ValueError(f"Record for {partition} has no '{key_field}' field")
        return str(key)
