import json
import logging

import pytest

from chat_stream.config.settings import ChatStreamSettings
from chat_stream.infrastructure.logging.logger import JsonFormatter


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ["CHAT_API_URL", "CHAT_API_KEY", "CHUNK_READ_TIMEOUT", "CHAT_STREAM_CONFIG_FILE"]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_settings_from_yaml(clean_env, monkeypatch):
    cfg = clean_env / "chat.yaml"
    cfg.write_text("chat_api_url: https://from-yaml.example/chat\nchunk_read_timeout: 5\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_STREAM_CONFIG_FILE", str(cfg))
    s = ChatStreamSettings()
    assert s.chat_api_url == "https://from-yaml.example/chat"
    assert s.chunk_read_timeout == 5.0


def test_env_overrides_yaml(clean_env, monkeypatch):
    cfg = clean_env / "config.yaml"
    cfg.write_text("chat_api_url: https://from-yaml.example/chat\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_API_URL", "https://from-env.example/chat")
    assert ChatStreamSettings().chat_api_url == "https://from-env.example/chat"


def test_short_api_key_rejected(clean_env):
    with pytest.raises(ValueError):
        ChatStreamSettings(chat_api_key="short")


def test_json_formatter_merges_extra():
    record = logging.LogRecord("chat_stream", logging.WARNING, __file__, 1, "stalled", None, None)
    record.extra = {"event": "decoder_stalled", "retries": 3}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["msg"] == "stalled"
    assert payload["retries"] == 3
    assert payload["ts"].endswith("Z")
