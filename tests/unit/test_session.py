"""
Unit tests for BrowserSession.

Covers:
- Start: hydration, initial inspection, failure cleanup
- Chunk execution: success, failure-as-data, screenshot indexing
- Navigation and inspection labels
- Auth persistence rules and teardown
"""

import asyncio

import pytest
import pytest_asyncio

from browser_control.browser.session import SessionState, label_for_url, slugify
from browser_control.errors import InvalidStateError, ValidationError

from fakes import DEFAULT_STORAGE_STATE


def screenshot_names(session) -> list[str]:
    return sorted(p.name for p in session.screenshots_dir.glob("*.png"))


class TestSlugs:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("Open Login", "open-login"),
            ("  --Checkout: Step #2!! ", "checkout-step-2"),
            ("", "screenshot"),
            ("***", "screenshot"),
        ],
    )
    def test_slugify(self, label, expected):
        assert slugify(label) == expected

    def test_slug_is_truncated_without_trailing_dash(self):
        slug = slugify("a" * 49 + " tail")
        assert slug == "a" * 49
        assert len(slugify("x" * 80)) == 50

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com", "home"),
            ("https://example.com/", "home"),
            ("https://example.com/account/settings/", "account-settings"),
        ],
    )
    def test_label_for_url(self, url, expected):
        assert label_for_url(url) == expected


class TestStart:
    @pytest.mark.asyncio
    async def test_start_takes_initial_inspection(self, make_session, browser_factory, config):
        session = make_session("a")

        inspection = await session.start("https://example.com")

        assert session.state is SessionState.ACTIVE
        assert session.screenshot_index == 1
        assert screenshot_names(session) == ["001-initial.png"]
        assert inspection.screenshot_path.endswith("001-initial.png")
        assert inspection.title == "Example Domain"
        assert inspection.buttons[0].selector == "#login"

        page = browser_factory.last.page
        assert page.default_timeout == 30000
        assert page.calls[0] == ("goto", "https://example.com", "domcontentloaded", config.start_timeout_ms)

    @pytest.mark.asyncio
    async def test_start_hydrates_from_existing_profile(self, make_session, browser_factory, profile_store):
        profile_store.save_state("work", DEFAULT_STORAGE_STATE, description="Work SSO")
        session = make_session()

        await session.start("https://example.com", profile="work")

        assert browser_factory.last.storage_state_source == profile_store.state_path("work")
        assert session.profile == "work"

    @pytest.mark.asyncio
    async def test_unknown_profile_starts_clean_but_binds(self, make_session, browser_factory):
        session = make_session()

        await session.start("https://example.com", profile="fresh")

        assert browser_factory.last.storage_state_source is None
        assert session.profile == "fresh"

    @pytest.mark.asyncio
    async def test_headless_override_reaches_browser(self, make_session, browser_factory):
        await make_session().start("https://example.com", headless=False)
        assert browser_factory.last.config.headless is False

    @pytest.mark.asyncio
    async def test_failed_navigation_closes_browser(self, make_session, browser_factory):
        browser_factory.setup = lambda b: b._page.unreachable.add("https://nope.invalid")
        session = make_session()

        with pytest.raises(ConnectionError):
            await session.start("https://nope.invalid")

        assert browser_factory.last.closed
        assert session.state is SessionState.STOPPED

    @pytest.mark.asyncio
    async def test_cannot_start_twice(self, make_session):
        session = make_session()
        await session.start("https://example.com")
        with pytest.raises(InvalidStateError):
            await session.start("https://example.com")


@pytest_asyncio.fixture
async def session(make_session):
    session = make_session("a")
    await session.start("https://example.com")
    return session


class TestRunChunk:
    @pytest.mark.asyncio
    async def test_successful_chunk_is_recorded(self, session, browser_factory):
        result = await session.run_chunk("click #login", label="Sign In")

        assert result.ok
        assert result.chunk.index == 1
        assert result.chunk.label == "Sign In"
        assert session.chunks == (result.chunk,)
        assert session.screenshot_index == 2
        assert screenshot_names(session) == ["001-initial.png", "002-sign-in.png"]
        assert ("click", "#login") in browser_factory.last.page.calls

    @pytest.mark.asyncio
    async def test_default_label_counts_chunks(self, session):
        await session.run_chunk("click #a")
        result = await session.run_chunk("click #b")
        assert result.label == "chunk-2"

    @pytest.mark.asyncio
    async def test_failed_chunk_is_data_not_error(self, session, browser_factory):
        browser_factory.last.page.missing.add("#ghost")

        result = await session.run_chunk("click #ghost", label="open")

        assert result.type == "chunk_failed"
        assert "line 1 (click)" in result.error
        assert "#ghost" in result.error
        assert result.inspection.screenshot_path.endswith("002-open-failed.png")
        assert session.chunks == ()
        assert session.screenshot_index == 2

    @pytest.mark.asyncio
    async def test_parse_errors_are_chunk_failures(self, session):
        result = await session.run_chunk("teleport #x")

        assert result.type == "chunk_failed"
        assert "unknown action" in result.error
        assert session.screenshot_index == 2

    @pytest.mark.asyncio
    async def test_failed_capture_after_failed_chunk_is_swallowed(self, session, browser_factory):
        page = browser_factory.last.page
        page.missing.add("#ghost")
        page.fail_screenshot = True

        result = await session.run_chunk("click #ghost")

        assert result.type == "chunk_failed"
        assert result.inspection is None
        assert session.screenshot_index == 2

    @pytest.mark.asyncio
    async def test_indices_keep_increasing_across_mixed_results(self, session, browser_factory):
        browser_factory.last.page.missing.add("#ghost")

        await session.run_chunk("click #a", label="one")
        await session.run_chunk("click #ghost", label="two")
        await session.run_chunk("click #b", label="three")

        assert screenshot_names(session) == [
            "001-initial.png",
            "002-one.png",
            "003-two-failed.png",
            "004-three.png",
        ]
        assert [c.index for c in session.chunks] == [1, 2]

    @pytest.mark.asyncio
    async def test_empty_code_is_rejected(self, session):
        with pytest.raises(ValidationError):
            await session.run_chunk("   ")
        assert session.screenshot_index == 1


class TestNavigateAndInspect:
    @pytest.mark.asyncio
    async def test_navigate_labels_screenshot_with_path(self, session, browser_factory, config):
        inspection = await session.navigate("https://example.com/account/settings")

        assert inspection.url == "https://example.com/account/settings"
        assert inspection.screenshot_path.endswith("002-account-settings.png")
        assert browser_factory.last.page.calls[-3] == (
            "goto",
            "https://example.com/account/settings",
            "domcontentloaded",
            config.navigate_timeout_ms,
        )

    @pytest.mark.asyncio
    async def test_inspect_full_page(self, session, browser_factory):
        inspection = await session.inspect(full_page=True)

        assert inspection.screenshot_path.endswith("002-inspect.png")
        assert browser_factory.last.page.calls[-2][2] is True

    @pytest.mark.asyncio
    async def test_navigate_requires_url(self, session):
        with pytest.raises(ValidationError):
            await session.navigate("")


class TestSaveAuth:
    @pytest.mark.asyncio
    async def test_new_profile_requires_description(self, session, profile_store):
        with pytest.raises(ValidationError) as exc_info:
            await session.save_auth("work")

        assert "Description required" in exc_info.value.message
        assert profile_store.get_meta("work") is None

    @pytest.mark.asyncio
    async def test_no_profile_anywhere(self, session):
        with pytest.raises(ValidationError) as exc_info:
            await session.save_auth()
        assert "No profile specified" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_save_binds_session_to_profile(self, session, profile_store):
        result = await session.save_auth("work", "Work SSO")

        assert result.created is True
        assert result.description == "Work SSO"
        assert session.profile == "work"
        assert profile_store.load_state("work") == DEFAULT_STORAGE_STATE

    @pytest.mark.asyncio
    async def test_existing_profile_keeps_description(self, session, profile_store):
        profile_store.save_state("work", {}, description="Work SSO")

        result = await session.save_auth("work")

        assert result.created is False
        assert result.description == "Work SSO"


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_persists_saved_profile(self, make_session, browser_factory, profile_store):
        profile_store.save_state("work", {"cookies": [], "origins": []}, description="Work SSO")
        session = make_session()
        await session.start("https://example.com", profile="work")

        summary = await session.stop()

        assert summary.auth.saved is True
        assert summary.auth.profile == "work"
        assert profile_store.load_state("work") == DEFAULT_STORAGE_STATE
        assert profile_store.get_meta("work").description == "Work SSO"
        assert browser_factory.last.closed
        assert session.state is SessionState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_never_creates_an_unsaved_profile(self, make_session, browser_factory, profile_store):
        session = make_session()
        await session.start("https://example.com", profile="brandnew")

        summary = await session.stop()

        assert summary.auth.soft_failure
        assert "Description required" in summary.auth.error
        assert profile_store.get_meta("brandnew") is None
        assert profile_store.has_state("brandnew") is False
        assert browser_factory.last.closed

    @pytest.mark.asyncio
    async def test_save_auth_still_needs_description_after_stop(self, make_session, profile_store):
        first = make_session()
        await first.start("https://example.com", profile="brandnew")
        await first.stop()

        second = make_session()
        await second.start("https://example.com")
        with pytest.raises(ValidationError) as exc_info:
            await second.save_auth("brandnew")
        assert "Description required" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_failed_auth_save_still_closes(self, make_session, browser_factory, profile_store):
        profile_store.save_state("work", {}, description="Work SSO")
        browser_factory.fail_storage = True
        session = make_session()
        await session.start("https://example.com", profile="work")

        summary = await session.stop()

        assert summary.auth.soft_failure
        assert "No space left" in summary.auth.error
        assert browser_factory.last.closed

    @pytest.mark.asyncio
    async def test_stop_without_profile(self, session):
        summary = await session.stop()
        assert summary.auth.profile is None
        assert summary.auth.soft_failure is False
        assert summary.screenshots_taken == 1

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, session):
        await session.stop()
        summary = await session.stop()
        assert summary.auth.saved is False
        assert summary.auth.soft_failure is False

    @pytest.mark.asyncio
    async def test_stop_does_not_wait_for_running_chunk(self, session, browser_factory):
        page = browser_factory.last.page
        page.hang_waits = True

        running = asyncio.create_task(session.run_chunk("wait 100000000", label="slow"))
        await asyncio.wait_for(page.waiting.wait(), 1)

        summary = await asyncio.wait_for(session.stop(), 2)
        result = await asyncio.wait_for(running, 2)

        assert summary.name == "a"
        assert browser_factory.last.closed
        assert session.state is SessionState.STOPPED
        assert result.type == "chunk_failed"
        assert "closed" in result.error
        assert session.chunks == ()

    @pytest.mark.asyncio
    async def test_operations_after_stop_are_rejected(self, session):
        await session.stop()

        with pytest.raises(InvalidStateError):
            await session.run_chunk("click #a")
        with pytest.raises(InvalidStateError):
            await session.inspect()
        assert session.status().active is False
        assert session.status().url is None


class TestConcurrentOperations:
    @pytest.mark.asyncio
    async def test_overlapping_chunks_run_one_after_another(self, session, browser_factory):
        page = browser_factory.last.page
        page.calls.clear()

        first, second = await asyncio.gather(
            session.run_chunk("wait 10\nclick #a\nwait 10", label="first"),
            session.run_chunk("wait 10\nclick #b\nwait 10", label="second"),
        )

        names = [c[:2] for c in page.calls if c[0] in ("wait_for_timeout", "click")]
        assert names == [
            ("wait_for_timeout", 10),
            ("click", "#a"),
            ("wait_for_timeout", 10),
            ("wait_for_timeout", 10),
            ("click", "#b"),
            ("wait_for_timeout", 10),
        ]
        assert [first.chunk.index, second.chunk.index] == [1, 2]
        assert screenshot_names(session) == ["001-initial.png", "002-first.png", "003-second.png"]

    @pytest.mark.asyncio
    async def test_navigate_waits_for_running_chunk(self, session, browser_factory):
        page = browser_factory.last.page
        page.calls.clear()

        chunk, inspection = await asyncio.gather(
            session.run_chunk("wait 10\nclick #a", label="chunk"),
            session.navigate("https://example.com/next"),
        )

        order = [c[0] for c in page.calls if c[0] in ("click", "goto")]
        assert order == ["click", "goto"]
        assert chunk.inspection.screenshot_path.endswith("002-chunk.png")
        assert inspection.screenshot_path.endswith("003-next.png")


@pytest.mark.asyncio
async def test_review_lists_chunks_in_order(session):
    await session.run_chunk("click #a", label="open")
    await session.run_chunk("click #b", label="submit")

    review = session.review()

    assert review.type == "review"
    assert review.name == "a"
    assert review.start_url == "https://example.com"
    assert [(c.index, c.label, c.code) for c in review.chunks] == [
        (1, "open", "click #a"),
        (2, "submit", "click #b"),
    ]
