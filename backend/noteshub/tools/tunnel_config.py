"""
NotesHub Tools — Tunnel Configuration Updater
==============================================

What:  Writes a freshly opened tunnel URL into the frontend build config.
How:   Two pure upserts plus async file wrappers (aiofiles):

    .env.production   VITE_API_BASE_URL=<url>
    firebase.json     hosting.rewrites: {"source": "/api/**", "destination": "<url>/api/**"}

Both updates are idempotent: running them again with the same URL leaves
the files unchanged, and each file ends up with exactly one entry for the
tracked key. File and JSON errors are logged and reported as False so the
tunnel keeps running.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Union

import aiofiles

logger = logging.getLogger(__name__)

ENV_KEY = "VITE_API_BASE_URL"
API_REWRITE_SOURCE = "/api/**"


# ── Pure upserts ──────────────────────────────────────────────────────────

def upsert_env_var(content: str, key: str, value: str) -> str:
    """
    Set `key` to `value` in dotenv-formatted text.

    The first `KEY=` line is rewritten in place and any later `KEY=` lines
    are dropped. Without an existing line, `KEY=value` is appended on a line
    of its own.
    """
    pattern = re.compile(rf"^{re.escape(key)}=")
    new_line = f"{key}={value}"

    lines = content.splitlines()
    result: List[str] = []
    found = False
    for line in lines:
        if pattern.match(line):
            if not found:
                result.append(new_line)
                found = True
            continue
        result.append(line)

    if not found:
        result.append(new_line)

    return "\n".join(result) + "\n"


def upsert_rewrite_rule(config: Dict[str, Any], url: str) -> bool:
    """
    Point the /api/** hosting rewrite at `url`, mutating `config` in place.

    An existing rule keeps its position and other fields; only its
    destination changes. Without one, a new rule is inserted first so it
    takes precedence over catch-all rewrites. Extra /api/** rules are removed.

    Returns:
        False when the config has no hosting.rewrites list (nothing changed).
    """
    hosting = config.get("hosting")
    rewrites = hosting.get("rewrites") if isinstance(hosting, dict) else None
    if not isinstance(rewrites, list):
        logger.warning("No hosting.rewrites list in Firebase config; skipping rewrite update")
        return False

    destination = f"{url}{API_REWRITE_SOURCE}"
    matches = [
        i for i, rule in enumerate(rewrites)
        if isinstance(rule, dict) and rule.get("source") == API_REWRITE_SOURCE
    ]

    if not matches:
        rewrites.insert(0, {"source": API_REWRITE_SOURCE, "destination": destination})
        return True

    rewrites[matches[0]]["destination"] = destination
    for index in reversed(matches[1:]):
        del rewrites[index]
    return True


# ── File wrappers ─────────────────────────────────────────────────────────

async def update_env_file(path: Union[str, Path], url: str, key: str = ENV_KEY) -> bool:
    """Upsert `key=url` into a dotenv file, creating the file if needed."""
    path = Path(path)
    try:
        content = ""
        if path.exists():
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()

        updated = upsert_env_var(content, key, url)
        if updated != content:
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(updated)
    except (OSError, ValueError) as e:
        logger.error("Error updating %s: %s", path, str(e))
        return False

    logger.info("Updated %s with %s=%s", path, key, url)
    return True


async def update_firebase_config(path: Union[str, Path], url: str) -> bool:
    """Upsert the /api/** rewrite in firebase.json. A missing file is skipped."""
    path = Path(path)
    if not path.exists():
        logger.warning("%s not found; skipping rewrite update", path)
        return False

    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            config = json.loads(await f.read())
        if not isinstance(config, dict):
            raise ValueError("top-level JSON value is not an object")

        if not upsert_rewrite_rule(config, url):
            return False

        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(config, indent=2) + "\n")
    except (OSError, ValueError) as e:
        logger.error("Error updating %s: %s", path, str(e))
        return False

    logger.info("Updated %s rewrite: %s -> %s%s", path, API_REWRITE_SOURCE, url, API_REWRITE_SOURCE)
    return True
