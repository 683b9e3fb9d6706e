"""Command-line entry point: startup validation and argument handling."""

import json

import pytest

from phishguard import main as cli
from phishguard.config import Config
from phishguard.pipeline.requests import TriggerSurface


@pytest.fixture
def keyless_env(monkeypatch, tmp_path):
    for name in ("GEMINI_API_KEY", "GEMINI_DEFAULT_TIER", "GEMINI_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFIG_DIR", str(tmp_path))
    served = []

    async def fake_run_server(config):
        served.append(config)
        return 0

    monkeypatch.setattr(cli, "run_server", fake_run_server)
    return served


def test_serve_starts_without_a_key(keyless_env):
    assert cli.main(["serve"]) == 0
    assert len(keyless_env) == 1
    assert keyless_env[0].gemini_api_key == ""


def test_serve_still_rejects_other_config_errors(keyless_env, monkeypatch):
    monkeypatch.setenv("GEMINI_TIMEOUT", "0")
    assert cli.main(["serve"]) == 2
    assert keyless_env == []


def test_scan_requires_a_key(keyless_env):
    assert cli.main(["scan", "https://example.com/"]) == 2


@pytest.mark.asyncio
async def test_scan_with_unknown_tier_prints_error(api_key, capsys):
    code = await cli.run_scan(Config(gemini_api_key=api_key), "https://example.com/", "ultra", TriggerSurface.MANUAL)

    assert code == 2
    payload = json.loads(capsys.readouterr().out)
    assert payload["error"]["code"] == "unknown_tier"
    assert "ultra" in payload["error"]["message"]
