from chat_stream.api import service
from chat_stream.providers.chat_client import ChatStreamClient


class SettingsStub:
    chat_api_url = "https://example.supabase.co/functions/v1/equipment-chat"
    chat_api_key = "anon-key-0123456789"
    http_timeout = 1.0
    chunk_read_timeout = 1.0


def test_get_default_client_is_singleton(monkeypatch):
    monkeypatch.setattr("chat_stream.api.service._client", None)
    monkeypatch.setattr("chat_stream.api.service.settings", SettingsStub())
    first = service.get_default_client()
    assert isinstance(first, ChatStreamClient)
    assert service.get_default_client() is first


def test_stream_chat_with_dict_history(monkeypatch):
    monkeypatch.setattr("chat_stream.api.service._client", ChatStreamClient(SettingsStub()))

    class FakeResponse:
        status_code = 200

        def iter_bytes(self):
            yield b'data: {"choices":[{"delta":{"content":"Try the "}}]}\n'
            yield b'data: {"choices":[{"delta":{"content":"[equipment:42]"}}]}\n\ndata: [DONE]\n'

    class StreamContext:
        def __enter__(self):
            return FakeResponse()

        def __exit__(self, *args):
            return False

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def stream(self, *a, **kw):
            return StreamContext()

    monkeypatch.setattr("httpx.Client", Client)
    deltas, done, errors = [], [], []
    service.stream_chat(
        [{"role": "user", "content": "need a lift"}, {"role": "assistant", "content": "sure"}],
        on_delta=deltas.append,
        on_done=lambda: done.append(True),
        on_error=errors.append,
    )
    assert "".join(deltas) == "Try the [equipment:42]"
    assert done == [True]
    assert errors == []


def test_invalid_role_is_reported_through_on_error(monkeypatch):
    monkeypatch.setattr("chat_stream.api.service._client", ChatStreamClient(SettingsStub()))
    deltas, done, errors = [], [], []
    service.stream_chat(
        [{"role": "system", "content": "x"}],
        on_delta=deltas.append,
        on_done=lambda: done.append(True),
        on_error=errors.append,
    )
    assert deltas == [] and done == []
    assert errors == ["Unsupported message role: 'system'"]
