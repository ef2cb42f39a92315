"""API key resolution and the local key-value store it persists to."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional, Protocol

from .config import CREDENTIAL_STORE_KEY, Settings
from .utils.exceptions import APIError, FormatError, RateLimitError, TimeoutError
from .utils.logger import get_logger

if TYPE_CHECKING:
    from .client import CensusClient

logger = get_logger("credentials")


class KeyValueStore(Protocol):
    """Minimal storage capability used for the saved API key."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, used in tests and when nothing should touch disk."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileKeyValueStore:
    """User-scoped JSON file holding string values."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning(
                "Ignoring unreadable credential store", extra={"path": str(self.path)}
            )
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) and value else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)


class CredentialResolver:
    """Resolves the Census API key.

    A key configured for the server wins over one the user saved locally.
    ``None`` means no network fetch can be made.
    """

    def __init__(self, settings: Settings, store: KeyValueStore):
        self.settings = settings
        self.store = store

    def get_api_key(self) -> Optional[str]:
        return self.settings.census_api_key or self.store.get(CREDENTIAL_STORE_KEY)

    @property
    def source(self) -> Optional[str]:
        if self.settings.census_api_key:
            return "environment"
        if self.store.get(CREDENTIAL_STORE_KEY):
            return "local"
        return None

    def save_api_key(self, key: str) -> None:
        self.store.set(CREDENTIAL_STORE_KEY, key)

    def clear_api_key(self) -> None:
        self.store.remove(CREDENTIAL_STORE_KEY)
        logger.info("Cleared locally saved Census API key")


@dataclass(frozen=True, slots=True)
class KeyValidationResult:
    success: bool
    message: str
    status_code: Optional[int] = None


async def validate_api_key(key: str, client: "CensusClient") -> KeyValidationResult:
    """Check a key with one lightweight query and save it if the API accepts it."""

    key = (key or "").strip()
    if not key:
        return KeyValidationResult(False, "API key is empty")

    try:
        await client.get_table(
            [],
            {"for": "state:06"},
            operation="validate_api_key",
            timeout=client.settings.validation_timeout,
            api_key=key,
        )
    except APIError as e:
        return KeyValidationResult(False, e.message, e.status_code)
    except (FormatError, TimeoutError, RateLimitError) as e:
        return KeyValidationResult(False, e.message)

    client.credentials.save_api_key(key)
    logger.info("Census API key validated and saved")
    return KeyValidationResult(True, "API key is valid and has been saved", 200)
