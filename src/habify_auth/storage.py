"""Key/value storage backends for session and PKCE state persistence."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import boto3  # type: ignore[reportMissingTypeStubs]
from dotenv import dotenv_values, set_key, unset_key

from .errors import ConfigurationMissing

if TYPE_CHECKING:
    from .config import AuthSettings


class KeyValueStore(Protocol):
    """String storage with whole-value overwrite semantics."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """In-memory store; lives as long as the process (one browser tab)."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._items: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._items.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            self._items[key] = value

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._items.pop(key, None)


class DotenvKeyValueStore:
    """Durable store backed by a dotenv file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    @staticmethod
    def _env_key(key: str) -> str:
        return key.upper().replace("-", "_")

    def _ensure_file(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch()

    def _read(self, key: str) -> str | None:
        if not self.path.exists():
            return None
        return dotenv_values(self.path).get(self._env_key(key))

    def _write(self, key: str, value: str) -> None:
        self._ensure_file()
        set_key(str(self.path), self._env_key(key), value)

    def _remove(self, key: str) -> None:
        if self._read(key) is None:
            return
        unset_key(str(self.path), self._env_key(key))

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)


class DynamoKeyValueStore:
    """Durable store backed by a DynamoDB table with a ``pk`` partition key."""

    def __init__(
        self,
        table_name: str,
        *,
        region_name: str | None = None,
        boto3_resource: Any | None = None,
    ) -> None:
        self._table_name = table_name
        resource = boto3_resource or boto3.resource("dynamodb", region_name=region_name)  # type: ignore[reportUnknownMemberType]
        self._table = resource.Table(table_name)  # type: ignore[reportAttributeAccessIssue]

    @staticmethod
    def _item_key(key: str) -> str:
        return f"kv:{key}"

    async def get(self, key: str) -> str | None:
        response = await asyncio.to_thread(self._table.get_item, Key={"pk": self._item_key(key)})  # type: ignore[reportUnknownMemberType,reportUnknownArgumentType]
        item = response.get("Item")  # type: ignore[reportUnknownMemberType,reportUnknownVariableType]
        if item is None:
            return None
        return item.get("data")  # type: ignore[reportUnknownMemberType]

    async def set(self, key: str, value: str) -> None:
        item = {"pk": self._item_key(key), "data": value}
        await asyncio.to_thread(self._table.put_item, Item=item)  # type: ignore[reportUnknownMemberType,reportUnknownArgumentType]

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._table.delete_item, Key={"pk": self._item_key(key)})  # type: ignore[reportUnknownMemberType,reportUnknownArgumentType]


def create_durable_store(settings: AuthSettings) -> KeyValueStore:
    """Instantiate the durable session backend selected in the settings."""
    backend = settings.habify_session_backend
    if backend == "dynamodb":
        if not settings.habify_session_table:
            raise ConfigurationMissing(
                "habify_session_table",
                "HABIFY_SESSION_TABLE must be set when HABIFY_SESSION_BACKEND=dynamodb.",
            )
        return DynamoKeyValueStore(
            settings.habify_session_table,
            region_name=settings.aws_region,
        )
    if backend == "memory":
        return MemoryKeyValueStore()
    return DotenvKeyValueStore(settings.habify_session_file)
