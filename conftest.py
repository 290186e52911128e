"""Test environment for dm_chat; must run before dm_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

# Used when .env.test is missing: no Redis, a fixed HS256 key.
_FALLBACK_ENV = {
    "FANOUT_BACKEND": "local",
    "JWT_SECRET": "test-secret-for-dm-chat-unit-tests-0123456789",
}


def _read_env_file(path: Path) -> dict[str, str]:
    pairs: dict[str, str] = {}
    if not path.exists():
        return pairs
    for raw in path.read_text().splitlines():
        entry = raw.strip()
        if entry and not entry.startswith("#"):
            key, _, value = entry.partition("=")
            pairs[key.strip()] = value.strip()
    return pairs


for _key, _value in {**_FALLBACK_ENV, **_read_env_file(Path(__file__).with_name(".env.test"))}.items():
    os.environ.setdefault(_key, _value)
