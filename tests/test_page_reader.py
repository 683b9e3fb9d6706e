"""Session bookkeeping of the Playwright reader, without launching a browser."""

import pytest

from phishguard.analyzer.page_reader import PlaywrightPageReader, UnknownSession


class _FakeFrame:
    def __init__(self, url: str):
        self.url = url


class _FakePage:
    def __init__(self, url: str):
        self.main_frame = _FakeFrame(url)
        self.url = url
        self.closed = False
        self.evaluated: list[tuple[str, object]] = []

    def is_closed(self):
        return self.closed

    async def evaluate(self, script, arg=None):
        self.evaluated.append((script, arg))
        return {"ok": True}

    async def title(self):
        return "Fake title"


def _reader_with_page(url: str = "https://example.com/", *, javascript: bool = True):
    navigations = []
    reader = PlaywrightPageReader(on_navigation=lambda sid, new_url: navigations.append((sid, new_url)))
    page = _FakePage(url)
    reader._pages["s1"] = page
    reader._scripts_enabled["s1"] = javascript
    reader._last_urls["s1"] = url
    return reader, page, navigations


def test_main_frame_navigation_notifies_once_per_url():
    reader, page, navigations = _reader_with_page()

    page.main_frame.url = "https://example.com/next"
    reader._handle_frame_navigated("s1", page.main_frame)
    reader._handle_frame_navigated("s1", page.main_frame)

    assert navigations == [("s1", "https://example.com/next")]


def test_subframe_navigation_is_ignored():
    reader, _, navigations = _reader_with_page()
    reader._handle_frame_navigated("s1", _FakeFrame("https://ads.example/"))
    assert navigations == []


def test_failing_navigation_callback_is_contained():
    reader, page, _ = _reader_with_page()

    def boom(session_id, new_url):
        raise RuntimeError("listener broke")

    reader.on_navigation = boom
    page.main_frame.url = "https://example.com/other"
    reader._handle_frame_navigated("s1", page.main_frame)
    assert reader._last_urls["s1"] == "https://example.com/other"


@pytest.mark.asyncio
async def test_capability_and_metadata():
    reader, page, _ = _reader_with_page(javascript=False)

    assert await reader.can_run_scripts("s1") is False
    assert await reader.can_run_scripts("missing") is False
    assert await reader.page_metadata("s1") == {"title": "Fake title", "url": "https://example.com/"}

    result = await reader.run_script("s1", "() => 1", 5)
    assert result == {"ok": True}
    assert page.evaluated == [("() => 1", 5)]


class _UnreachablePage(_FakePage):
    async def goto(self, url, **kwargs):
        raise TimeoutError(f"Timeout loading {url}")


class _FakeContext:
    def __init__(self):
        self.closed = False

    async def new_page(self):
        return _UnreachablePage("about:blank")

    async def close(self):
        self.closed = True


class _FakeBrowser:
    def __init__(self):
        self.contexts: list[_FakeContext] = []

    async def new_context(self, **kwargs):
        context = _FakeContext()
        self.contexts.append(context)
        return context


@pytest.mark.asyncio
async def test_failed_navigation_closes_context():
    reader = PlaywrightPageReader()
    browser = _FakeBrowser()
    reader._browser = browser

    with pytest.raises(TimeoutError):
        await reader.open_session("https://unreachable.example/")

    assert len(browser.contexts) == 1
    assert browser.contexts[0].closed is True
    assert reader._pages == {}


@pytest.mark.asyncio
async def test_closed_page_is_unknown():
    reader, page, _ = _reader_with_page()
    page.closed = True
    with pytest.raises(UnknownSession):
        await reader.run_script("s1", "() => 1")
