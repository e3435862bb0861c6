"""
API-key acquisition and fallback.

A key comes from one of three origins. `resolve_credential` walks the
candidates in priority order and returns the first usable one, probing each
untrusted candidate with a single trial generation call.
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

KEY_PREFIX = "AIza"
KEY_MIN_LENGTH = 31
STORAGE_NAMESPACE = "geminiApiKey"

Validator = Callable[[str], Awaitable[bool]]


class CredentialOrigin(str, Enum):
    USER_SUPPLIED = "user-supplied-runtime"
    PERSISTED = "persisted-client"
    SERVER_CONFIGURED = "server-configured"


@dataclass
class Credential:
    value: str
    origin: CredentialOrigin
    # Supplied through a trusted side channel; accepted without a probe.
    trusted: bool = False
    validity: Optional[bool] = None

    def __repr__(self) -> str:
        masked = f"{self.value[:4]}…" if self.value else "<empty>"
        return f"Credential(origin={self.origin.value}, value={masked}, validity={self.validity})"


def is_valid_key_format(key: Optional[str]) -> bool:
    """Google AI Studio keys start with `AIza` and are longer than 30 characters."""
    return bool(key) and key.startswith(KEY_PREFIX) and len(key) >= KEY_MIN_LENGTH


class KeyStore:
    """
    Client-side persisted key: one string under a fixed namespace in a JSON file.

    Values that fail the format check are never returned.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️  Could not read key store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # The mode on O_CREAT only applies to new files.
        if self.path.exists():
            os.chmod(self.path, 0o600)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2))

    def get(self) -> Optional[str]:
        key = self._load().get(STORAGE_NAMESPACE)
        if isinstance(key, str) and is_valid_key_format(key):
            return key
        return None

    def set(self, key: str) -> None:
        key = key.strip()
        if not is_valid_key_format(key):
            raise ValueError("API key must start with 'AIza' and be longer than 30 characters.")
        data = self._load()
        data[STORAGE_NAMESPACE] = key
        self._write(data)

    def clear(self) -> None:
        data = self._load()
        if STORAGE_NAMESPACE not in data:
            return
        del data[STORAGE_NAMESPACE]
        if data:
            self._write(data)
        else:
            self.path.unlink()


def build_candidates(
    supplied: Optional[str] = None,
    server_default: Optional[str] = None,
    persisted: Optional[str] = None,
    supplied_trusted: bool = True,
    supplied_origin: CredentialOrigin = CredentialOrigin.USER_SUPPLIED,
) -> List[Credential]:
    """Order the available keys: request-supplied, server default, persisted."""
    candidates = []
    if supplied and supplied.strip():
        candidates.append(Credential(supplied.strip(), supplied_origin, trusted=supplied_trusted))
    if server_default and server_default.strip():
        candidates.append(Credential(server_default.strip(), CredentialOrigin.SERVER_CONFIGURED))
    if persisted and persisted.strip():
        candidates.append(Credential(persisted.strip(), CredentialOrigin.PERSISTED))
    return candidates


async def resolve_credential(candidates: Iterable[Credential], validator: Validator) -> Optional[Credential]:
    """
    Return the first usable credential, or None when nothing validates.

    Trusted candidates win immediately. Every other candidate costs one probe;
    probing stops at the first success and never touches a second candidate of
    an origin that was already probed. Persisted values with a bad format are
    skipped without a probe.
    """
    probed_origins = set()

    for candidate in candidates:
        if not candidate.value:
            continue

        if candidate.trusted:
            logger.info(f"🔑 Using {candidate.origin.value} key supplied on the request")
            candidate.validity = True
            return candidate

        if candidate.origin is CredentialOrigin.PERSISTED and not is_valid_key_format(candidate.value):
            logger.info("🔑 Ignoring persisted key with invalid format")
            continue

        if candidate.origin in probed_origins:
            logger.debug(f"Skipping second {candidate.origin.value} candidate")
            continue
        probed_origins.add(candidate.origin)

        logger.info(f"🔑 Probing {candidate.origin.value} key...")
        candidate.validity = await validator(candidate.value)
        if candidate.validity:
            return candidate

    logger.warning("⚠️  No usable API key found")
    return None
