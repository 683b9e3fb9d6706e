import httpx
import pytest

from phishguard.analyzer.invoker import ModelInvoker, extract_generated_text
from phishguard.analyzer.tiers import ModelTier, TierChain
from phishguard.errors import AllTiersExhausted, EmptyReplyError, TransportError


API_KEY = "AIza" + "k" * 35

TIERS = (
    ModelTier("a", "model-a", "Model A", 1),
    ModelTier("b", "model-b", "Model B", 2),
    ModelTier("c", "model-c", "Model C", 3),
)


def _reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class _FakeResponse:
    def __init__(self, *, status_code: int = 200, json_data: object = None, reason_phrase: str = ""):
        self.status_code = status_code
        self._json_data = json_data
        self.reason_phrase = reason_phrase

    def json(self):  # noqa: ANN201
        if self._json_data is None:
            raise ValueError("No JSON configured for fake response")
        return self._json_data


class _FakeAsyncClient:
    """Answers each model URL from a per-model list of outcomes."""

    def __init__(self, outcomes: dict[str, list[object]], calls: list[dict]):
        self._outcomes = outcomes
        self._calls = calls

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url: str, *args, **kwargs):
        model = url.rsplit("/", 1)[-1].split(":", 1)[0]
        self._calls.append({"url": url, "model": model, **kwargs})
        outcome = self._outcomes[model].pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _install(monkeypatch, outcomes: dict[str, list[object]]) -> list[dict]:
    calls: list[dict] = []

    def fake_async_client(*args, **kwargs):
        return _FakeAsyncClient(outcomes, calls)

    monkeypatch.setattr(httpx, "AsyncClient", fake_async_client)
    return calls


def _invoker(**kwargs) -> ModelInvoker:
    return ModelInvoker(API_KEY, TierChain(TIERS), base_url="https://gemini.test/v1beta/", **kwargs)


@pytest.mark.asyncio
async def test_first_tier_success(monkeypatch):
    calls = _install(monkeypatch, {"model-a": [_FakeResponse(json_data=_reply("ok"))]})

    outcome = await _invoker().invoke("prompt")

    assert outcome.text == "ok"
    assert outcome.tier.key == "a"
    assert outcome.attempts == 1
    assert calls[0]["url"] == "https://gemini.test/v1beta/models/model-a:generateContent"
    assert calls[0]["headers"]["x-goog-api-key"] == API_KEY
    assert calls[0]["json"]["contents"][0]["parts"][0]["text"] == "prompt"
    assert calls[0]["json"]["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 1024}


@pytest.mark.asyncio
async def test_advances_forward_through_failing_tiers(monkeypatch):
    calls = _install(
        monkeypatch,
        {
            "model-a": [_FakeResponse(status_code=503, json_data={"error": {"message": "overloaded"}})],
            "model-b": [httpx.ConnectError("refused")],
            "model-c": [_FakeResponse(json_data=_reply("third time"))],
        },
    )
    changes = []

    outcome = await _invoker().invoke(
        "prompt",
        on_tier_change=lambda src, dst, err: changes.append((src.key, dst.key, type(err))),
    )

    assert [c["model"] for c in calls] == ["model-a", "model-b", "model-c"]
    assert outcome.tier.key == "c"
    assert outcome.attempts == 3
    assert changes == [("a", "b", TransportError), ("b", "c", TransportError)]


@pytest.mark.asyncio
async def test_all_tiers_failing_raises_with_last_error(monkeypatch):
    calls = _install(
        monkeypatch,
        {
            "model-a": [_FakeResponse(status_code=500, reason_phrase="Internal Server Error")],
            "model-b": [_FakeResponse(status_code=429, json_data={"error": {"message": "quota"}})],
            "model-c": [_FakeResponse(json_data={"candidates": []})],
        },
    )

    with pytest.raises(AllTiersExhausted) as excinfo:
        await _invoker().invoke("prompt")

    # Each tier tried exactly once.
    assert len(calls) == 3
    last = excinfo.value.last_error
    assert isinstance(last, EmptyReplyError)
    assert last.tier == "c"
    assert excinfo.value.__cause__ is last
    assert excinfo.value.user_message == "Scan failed. Please try again later."


@pytest.mark.asyncio
async def test_start_key_skips_cheaper_tiers(monkeypatch):
    calls = _install(
        monkeypatch,
        {
            "model-b": [_FakeResponse(status_code=500, reason_phrase="boom")],
            "model-c": [_FakeResponse(json_data=_reply("fine"))],
        },
    )

    outcome = await _invoker().invoke("prompt", start_key="b")

    assert [c["model"] for c in calls] == ["model-b", "model-c"]
    assert outcome.tier.key == "c"


@pytest.mark.asyncio
async def test_last_tier_start_gets_single_attempt(monkeypatch):
    calls = _install(monkeypatch, {"model-c": [_FakeResponse(status_code=500, reason_phrase="boom")]})

    with pytest.raises(AllTiersExhausted):
        await _invoker().invoke("prompt", start_key="c")
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_call_tier_reports_remote_error_message(monkeypatch):
    _install(
        monkeypatch,
        {"model-a": [_FakeResponse(status_code=403, json_data={"error": {"message": "API key not valid"}})]},
    )

    with pytest.raises(TransportError) as excinfo:
        await _invoker().call_tier(TIERS[0], "prompt")
    assert excinfo.value.status_code == 403
    assert "API key not valid" in str(excinfo.value)
    assert not excinfo.value.fatal


@pytest.mark.asyncio
async def test_call_tier_rejects_non_json_body(monkeypatch):
    _install(monkeypatch, {"model-a": [_FakeResponse(status_code=200)]})

    with pytest.raises(TransportError):
        await _invoker().call_tier(TIERS[0], "prompt")


def test_extract_generated_text_shapes():
    assert extract_generated_text(_reply("hello")) == "hello"
    assert extract_generated_text(_reply("   ")) is None
    assert extract_generated_text({"candidates": [{"content": {}}]}) is None
    assert extract_generated_text({"candidates": "nope"}) is None
    assert extract_generated_text(None) is None
