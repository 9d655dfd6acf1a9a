from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path

from .models import TokenSet


@dataclass
class StoredCredentials:
    access_token: str
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_at: float | None = None


class CredentialStore(ABC):
    """Persisted session credentials.

    Subclasses implement ``get``/``set``/``delete``; the refresh machinery only
    uses the token-level helpers below. Each helper is a single ``set`` or
    ``delete`` so a write is never observed half done.
    """

    @abstractmethod
    async def get(self) -> StoredCredentials | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, data: StoredCredentials) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self) -> None:
        raise NotImplementedError

    async def get_access_token(self) -> str | None:
        current = await self.get()
        return None if current is None else current.access_token

    async def get_refresh_token(self) -> str | None:
        current = await self.get()
        return None if current is None else current.refresh_token

    async def is_authenticated(self) -> bool:
        return bool(await self.get_access_token())

    async def set_token_data(self, token_set: TokenSet) -> None:
        refresh_token = token_set.refresh_token
        if refresh_token is None:
            refresh_token = await self.get_refresh_token()
        await self.set(
            StoredCredentials(
                access_token=token_set.access_token,
                refresh_token=refresh_token,
                token_type=token_set.token_type,
                expires_at=token_set.expires_at(),
            )
        )

    async def clear_auth(self) -> None:
        await self.delete()


class MemoryCredentialStore(CredentialStore):
    def __init__(self, data: StoredCredentials | None = None) -> None:
        self._data = data

    async def get(self) -> StoredCredentials | None:
        return self._data

    async def set(self, data: StoredCredentials) -> None:
        self._data = data

    async def delete(self) -> None:
        self._data = None


class FileCredentialStore(CredentialStore):
    def __init__(self, path: str | Path = ".credentials.json") -> None:
        self._path = Path(path)

    async def get(self) -> StoredCredentials | None:
        if not self._path.exists():
            return None

        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise RuntimeError("Credential file is invalid; expected top-level JSON object.")
        return StoredCredentials(**raw)

    async def set(self, data: StoredCredentials) -> None:
        self._write(data)

    async def delete(self) -> None:
        self._path.unlink(missing_ok=True)

    def _write(self, data: StoredCredentials) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f"{self._path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(asdict(data), handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
