"""
NotesHub Tools — Tunnel Configuration Updater Tests
====================================================

What we test:
    ✅ Env upsert: replace in place, append, collapse duplicates, idempotent
    ✅ Rewrite upsert: update in place, insert first, collapse duplicates
    ✅ File wrappers: create, idempotent rewrite, errors reported as False
"""

import json

import pytest

from noteshub.tools.tunnel_config import (
    API_REWRITE_SOURCE,
    ENV_KEY,
    update_env_file,
    update_firebase_config,
    upsert_env_var,
    upsert_rewrite_rule,
)

URL = "https://abc123.ngrok.io"


# ── upsert_env_var ────────────────────────────────────────────────────────

def test_env_upsert_appends_to_empty():
    assert upsert_env_var("", ENV_KEY, URL) == f"{ENV_KEY}={URL}\n"


def test_env_upsert_replaces_in_place():
    content = f"FOO=1\n{ENV_KEY}=https://old.example\nBAR=2\n"

    result = upsert_env_var(content, ENV_KEY, URL)

    assert result == f"FOO=1\n{ENV_KEY}={URL}\nBAR=2\n"


def test_env_upsert_appends_on_new_line():
    result = upsert_env_var("FOO=1", ENV_KEY, URL)
    assert result == f"FOO=1\n{ENV_KEY}={URL}\n"


def test_env_upsert_collapses_duplicates():
    content = f"{ENV_KEY}=a\nFOO=1\n{ENV_KEY}=b\n"

    result = upsert_env_var(content, ENV_KEY, URL)

    assert result.count(f"{ENV_KEY}=") == 1
    assert result == f"{ENV_KEY}={URL}\nFOO=1\n"


def test_env_upsert_ignores_similar_keys():
    content = f"{ENV_KEY}_OLD=keep\n"
    result = upsert_env_var(content, ENV_KEY, URL)
    assert f"{ENV_KEY}_OLD=keep" in result
    assert f"{ENV_KEY}={URL}" in result


def test_env_upsert_idempotent():
    once = upsert_env_var("FOO=1\n", ENV_KEY, URL)
    assert upsert_env_var(once, ENV_KEY, URL) == once


def test_env_upsert_value_with_backslashes():
    value = r"https://x.example/\1"
    assert upsert_env_var(f"{ENV_KEY}=old\n", ENV_KEY, value) == f"{ENV_KEY}={value}\n"


# ── upsert_rewrite_rule ───────────────────────────────────────────────────

def _config(*rules):
    return {"hosting": {"public": "dist", "rewrites": list(rules)}}


def test_rewrite_inserted_first():
    config = _config({"source": "**", "destination": "/index.html"})

    assert upsert_rewrite_rule(config, URL) is True

    rewrites = config["hosting"]["rewrites"]
    assert rewrites[0] == {"source": API_REWRITE_SOURCE, "destination": f"{URL}/api/**"}
    assert rewrites[1] == {"source": "**", "destination": "/index.html"}


def test_rewrite_updated_in_place():
    config = _config(
        {"source": "**", "destination": "/index.html"},
        {"source": "/api/**", "destination": "https://old/api/**", "note": "keep"},
    )

    upsert_rewrite_rule(config, URL)

    rewrites = config["hosting"]["rewrites"]
    assert len(rewrites) == 2
    assert rewrites[1] == {"source": "/api/**", "destination": f"{URL}/api/**", "note": "keep"}


def test_rewrite_duplicates_collapsed():
    config = _config(
        {"source": "/api/**", "destination": "https://a/api/**"},
        {"source": "**", "destination": "/index.html"},
        {"source": "/api/**", "destination": "https://b/api/**"},
    )

    upsert_rewrite_rule(config, URL)

    api_rules = [r for r in config["hosting"]["rewrites"] if r["source"] == "/api/**"]
    assert api_rules == [{"source": "/api/**", "destination": f"{URL}/api/**"}]


@pytest.mark.parametrize("config", [{}, {"hosting": {}}, {"hosting": {"rewrites": "nope"}}])
def test_rewrite_missing_list_skipped(config):
    before = json.dumps(config)
    assert upsert_rewrite_rule(config, URL) is False
    assert json.dumps(config) == before


# ── File wrappers ─────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_env_file_creates_and_is_idempotent(tmp_path):
    path = tmp_path / ".env.production"

    assert await update_env_file(path, URL) is True
    first = path.read_text()
    assert await update_env_file(path, URL) is True

    assert first == f"{ENV_KEY}={URL}\n"
    assert path.read_text() == first


@pytest.mark.asyncio
async def test_update_env_file_error_returns_false(tmp_path):
    # A directory where the file should be
    path = tmp_path / ".env.production"
    path.mkdir()

    assert await update_env_file(path, URL) is False


@pytest.mark.asyncio
async def test_update_env_file_undecodable_returns_false(tmp_path):
    path = tmp_path / ".env.production"
    path.write_bytes(b"OTHER=\xff\xfe\n")

    assert await update_env_file(path, URL) is False
    assert path.read_bytes() == b"OTHER=\xff\xfe\n"


@pytest.mark.asyncio
async def test_update_firebase_config(tmp_path):
    path = tmp_path / "firebase.json"
    path.write_text(json.dumps(_config({"source": "**", "destination": "/index.html"})))

    assert await update_firebase_config(path, URL) is True
    assert await update_firebase_config(path, URL) is True

    config = json.loads(path.read_text())
    assert config["hosting"]["rewrites"][0]["destination"] == f"{URL}/api/**"
    assert len(config["hosting"]["rewrites"]) == 2
    assert path.read_text().startswith('{\n  "hosting"')


@pytest.mark.asyncio
async def test_update_firebase_config_missing_file(tmp_path):
    assert await update_firebase_config(tmp_path / "firebase.json", URL) is False


@pytest.mark.asyncio
async def test_update_firebase_config_invalid_json(tmp_path):
    path = tmp_path / "firebase.json"
    path.write_text("{ not json")

    assert await update_firebase_config(path, URL) is False
    assert path.read_text() == "{ not json"
