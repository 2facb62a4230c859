#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContraVault - Document Store
Асинхронное хранилище документов: in-memory и JSON-файл

Версия: 1.0.0
Дата: 2025-11-02
"""

import re
import copy
import json
import asyncio
import shutil
import time
from datetime import datetime, date
from pathlib import Path
from typing import Dict, List, Optional, Any, Callable
from dataclasses import dataclass
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class StoreError(Exception):
    """Базовое исключение для ошибок хранилища"""
    pass

class StoreConnectionError(StoreError):
    """Хранилище недоступно"""
    pass

class StoreCorruptionError(StoreError):
    """Файл хранилища повреждён"""
    pass

class DuplicateKeyError(StoreError):
    """Документ с таким _id уже существует"""
    pass

# ===== HELPER CLASSES =====

@dataclass
class StoreStats:
    """Статистика хранилища"""
    reads: int = 0
    writes: int = 0
    save_count: int = 0
    error_count: int = 0
    last_save: Optional[str] = None
    started_at: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'reads': self.reads,
            'writes': self.writes,
            'save_count': self.save_count,
            'error_count': self.error_count,
            'last_save': self.last_save,
            'uptime_seconds': int(time.time() - self.started_at) if self.started_at else 0,
        }

# ===== FILTER MATCHING =====

_MISSING = object()

def _get_field(document: Dict[str, Any], path: str) -> Any:
    """Значение по пути вида a.b.c или _MISSING"""
    current: Any = document
    for part in path.split('.'):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current

def _compare(value: Any, other: Any, op: Callable[[Any, Any], bool]) -> bool:
    if value is _MISSING or value is None or other is None:
        return False
    try:
        return op(value, other)
    except TypeError:
        return False

def _values_equal(value: Any, expected: Any) -> bool:
    # Как в Mongo: скаляр совпадает с элементом массива
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    if value is _MISSING:
        return expected is None
    return value == expected

def _match_regex(value: Any, pattern: Any, options: str = "") -> bool:
    flags = re.IGNORECASE if 'i' in options else 0
    regex = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern, flags)
    if isinstance(value, list):
        return any(isinstance(v, str) and regex.search(v) for v in value)
    return isinstance(value, str) and regex.search(value) is not None

_COMPARATORS: Dict[str, Callable[[Any, Any], bool]] = {
    '$gte': lambda a, b: a >= b,
    '$lt': lambda a, b: a < b,
    '$lte': lambda a, b: a <= b,
}

def _match_condition(value: Any, condition: Any) -> bool:
    if not isinstance(condition, dict) or not any(k.startswith('$') for k in condition):
        return _values_equal(value, condition)

    for op, operand in condition.items():
        if op == '$ne':
            if _values_equal(value, operand):
                return False
        elif op == '$in':
            if not any(_values_equal(value, item) for item in operand):
                return False
        elif op in _COMPARATORS:
            if not _compare(value, operand, _COMPARATORS[op]):
                return False
        elif op == '$regex':
            if not _match_regex(value, operand, condition.get('$options', '')):
                return False
        elif op == '$options':
            continue
        else:
            raise StoreError(f"Unsupported query operator: {op}")
    return True

def matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    """Проверка документа на соответствие Mongo-подобному фильтру"""
    if not query:
        return True

    for key, condition in query.items():
        if key == '$or':
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _match_condition(_get_field(document, key), condition):
            return False
    return True

def apply_update(document: Dict[str, Any], update: Dict[str, Any]) -> bool:
    """Применить операторы обновления. Возвращает True, если документ изменился"""
    before = copy.deepcopy(document)

    for op, fields in update.items():
        if op == '$set':
            for key, value in fields.items():
                document[key] = copy.deepcopy(value)
        elif op == '$inc':
            for key, amount in fields.items():
                document[key] = (document.get(key) or 0) + amount
        elif op == '$push':
            for key, value in fields.items():
                items = document.get(key)
                if not isinstance(items, list):
                    items = []
                items.append(copy.deepcopy(value))
                document[key] = items
        else:
            raise StoreError(f"Unsupported update operator: {op}")

    return document != before

# ===== MEMORY STORE =====

class MemoryDocumentStore:
    """Хранилище документов в памяти

    Коллекции создаются при первом обращении. Все операции сериализованы
    одним asyncio.Lock, документы наружу отдаются копиями.
    """

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._counter = 0
        self.stats = StoreStats(started_at=time.time())
        self.is_initialized = False

    async def initialize(self) -> None:
        self.is_initialized = True
        logger.info("Memory document store initialized")

    async def close(self) -> None:
        self.is_initialized = False

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def _next_id(self) -> str:
        self._counter += 1
        return f"{int(time.time() * 1000):x}{self._counter:08x}"

    def _persist(self, collection: str, previous: Dict[str, Optional[Dict[str, Any]]]) -> None:
        """Хук для хранилищ с persistence

        previous: _id -> состояние документа до мутации (None для вставленных).
        """
        pass

    # ===== PUBLIC API =====

    async def find_one(self, collection: str, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._lock:
            self.stats.reads += 1
            for document in self._collection(collection).values():
                if matches(document, query):
                    return copy.deepcopy(document)
            return None

    async def find_many(self, collection: str, query: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        async with self._lock:
            self.stats.reads += 1
            return [copy.deepcopy(d) for d in self._collection(collection).values() if matches(d, query)]

    async def count(self, collection: str, query: Optional[Dict[str, Any]] = None) -> int:
        async with self._lock:
            self.stats.reads += 1
            return sum(1 for d in self._collection(collection).values() if matches(d, query))

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        async with self._lock:
            docs = self._collection(collection)
            doc = copy.deepcopy(document)
            doc_id = str(doc.get('_id') or self._next_id())
            if doc_id in docs:
                raise DuplicateKeyError(f"Duplicate _id in {collection}: {doc_id}")
            doc['_id'] = doc_id
            docs[doc_id] = doc
            self._persist(collection, {doc_id: None})
            self.stats.writes += 1
            return doc_id

    async def find_one_and_update(self, collection: str, query: Dict[str, Any],
                                  update: Dict[str, Any], upsert: bool = False) -> Optional[Dict[str, Any]]:
        """Обновить первый подходящий документ и вернуть его новое состояние"""
        async with self._lock:
            docs = self._collection(collection)
            for doc_id, document in docs.items():
                if matches(document, query):
                    previous = copy.deepcopy(document)
                    if apply_update(document, update):
                        self._persist(collection, {doc_id: previous})
                        self.stats.writes += 1
                    return copy.deepcopy(document)

            if not upsert:
                return None

            document = {k: copy.deepcopy(v) for k, v in query.items()
                        if not k.startswith('$') and not isinstance(v, dict)}
            apply_update(document, update)
            document['_id'] = str(document.get('_id') or self._next_id())
            docs[document['_id']] = document
            self._persist(collection, {document['_id']: None})
            self.stats.writes += 1
            return copy.deepcopy(document)

    async def update_many(self, collection: str, query: Dict[str, Any], update: Dict[str, Any]) -> int:
        """Обновить все подходящие документы, вернуть число реально изменённых"""
        async with self._lock:
            previous: Dict[str, Optional[Dict[str, Any]]] = {}
            for doc_id, document in self._collection(collection).items():
                if matches(document, query):
                    before = copy.deepcopy(document)
                    if apply_update(document, update):
                        previous[doc_id] = before
            if previous:
                self._persist(collection, previous)
                self.stats.writes += 1
            return len(previous)

    async def health_check(self) -> Dict[str, Any]:
        return {
            'backend': 'memory',
            'initialized': self.is_initialized,
            'collections': {name: len(docs) for name, docs in self._collections.items()},
            **self.stats.to_dict(),
        }

# ===== JSON FILE STORE =====

def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {'$date': value.isoformat()}
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

def _decode(obj: Dict[str, Any]) -> Any:
    if set(obj) == {'$date'}:
        return datetime.fromisoformat(obj['$date'])
    return obj

class JsonFileDocumentStore(MemoryDocumentStore):
    """Хранилище в памяти с сохранением в JSON-файл

    save_interval == 0 означает запись файла после каждой мутации,
    иначе файл сбрасывается периодически через APScheduler.
    """

    def __init__(self, data_file: Path, save_interval: int = 0):
        super().__init__()
        self.data_file = Path(data_file)
        self.save_interval = save_interval
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._dirty = False

    async def initialize(self) -> None:
        """Загрузка файла и запуск планировщика"""
        try:
            logger.info(f"Initializing JSON document store at {self.data_file}...")
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self._load()

            if self.save_interval > 0:
                self.scheduler = AsyncIOScheduler()
                self.scheduler.add_job(
                    self._periodic_save,
                    IntervalTrigger(seconds=self.save_interval),
                    id='periodic_save',
                    replace_existing=True
                )
                self.scheduler.start()
                logger.info(f"Periodic save every {self.save_interval}s scheduled")

            self.is_initialized = True
        except StoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize store: {e}")
            raise StoreConnectionError(f"Store initialization failed: {e}")

    async def close(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.flush()
        await super().close()
        logger.info("JSON document store closed")

    def _load(self) -> None:
        if not self.data_file.exists():
            logger.info("Store file does not exist, starting with empty store")
            return

        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                data = json.load(f, object_hook=_decode)
        except json.JSONDecodeError as e:
            logger.error(f"Store file is corrupted: {e}")
            raise StoreCorruptionError(f"Store file is corrupted: {e}")

        self._collections = {name: {doc['_id']: doc for doc in docs} for name, docs in data.items()}
        total = sum(len(docs) for docs in self._collections.values())
        logger.info(f"Loaded {total} documents from {self.data_file}")

    def _save_sync(self, snapshot: Dict[str, List[Dict[str, Any]]]) -> None:
        # Атомарное сохранение через временный файл
        temp_file = self.data_file.with_suffix('.tmp')
        try:
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(snapshot, f, ensure_ascii=False, indent=2, default=_encode)
            shutil.move(str(temp_file), str(self.data_file))
        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

        self.stats.save_count += 1
        self.stats.last_save = datetime.now().isoformat()

    def _persist(self, collection: str, previous: Dict[str, Optional[Dict[str, Any]]]) -> None:
        was_dirty = self._dirty
        self._dirty = True
        if self.save_interval > 0:
            return

        try:
            self._write_snapshot()
        except StoreError:
            # Незаписанная мутация откатывается в памяти
            docs = self._collection(collection)
            for doc_id, document in previous.items():
                if document is None:
                    docs.pop(doc_id, None)
                else:
                    docs[doc_id] = document
            self._dirty = was_dirty
            raise

    def _write_snapshot(self) -> None:
        snapshot = {name: list(docs.values()) for name, docs in self._collections.items()}
        try:
            self._save_sync(snapshot)
            self._dirty = False
        except Exception as e:
            self.stats.error_count += 1
            logger.error(f"Failed to save store: {e}")
            raise StoreError(f"Failed to save store: {e}") from e

    async def flush(self) -> None:
        """Принудительное сохранение несохранённых изменений"""
        async with self._lock:
            if self._dirty:
                self._write_snapshot()

    async def _periodic_save(self) -> None:
        try:
            await self.flush()
            logger.debug("Periodic save completed")
        except StoreError as e:
            logger.error(f"Periodic save failed: {e}")

    async def health_check(self) -> Dict[str, Any]:
        info = await super().health_check()
        info.update({
            'backend': 'json',
            'data_file': str(self.data_file),
            'dirty': self._dirty,
            'scheduler_running': bool(self.scheduler and self.scheduler.running),
        })
        return info

# ===== FACTORY =====

def create_store(backend: str = "memory", data_dir: Optional[Path] = None,
                 save_interval: int = 0) -> MemoryDocumentStore:
    """Создать хранилище по имени бэкенда"""
    if backend == "memory":
        return MemoryDocumentStore()
    if backend == "json":
        data_file = Path(data_dir or "data") / "contravault.json"
        return JsonFileDocumentStore(data_file, save_interval=save_interval)
    raise StoreError(f"Unknown storage backend: {backend}")

# ===== EXPORT =====

__all__ = [
    'StoreError', 'StoreConnectionError', 'StoreCorruptionError', 'DuplicateKeyError',
    'StoreStats', 'MemoryDocumentStore', 'JsonFileDocumentStore',
    'matches', 'apply_update', 'create_store'
]
