"""Reusable Playwright browser and contexts across sequential captures."""

from __future__ import annotations

import atexit
import contextlib
import logging
import threading
from collections import OrderedDict
from collections.abc import Sequence
from typing import Any

logger = logging.getLogger(__name__)


class _ThreadState:
    def __init__(self) -> None:
        self.playwright = None
        self.browser = None
        self.launch_key: tuple[Any, ...] | None = None
        self.contexts: OrderedDict[tuple[Any, ...], Any] = OrderedDict()


class PlaywrightPool:
    """Keeps one Chromium per thread and a small LRU of browser contexts.

    Each new context gets ``route(...).abort()`` handlers for the blocked
    resource patterns, so images, fonts and trackers are never downloaded.
    """

    def __init__(self, max_contexts: int = 2) -> None:
        self._max_contexts = max(1, max_contexts)
        self._local = threading.local()

    def _state(self) -> _ThreadState:
        state = getattr(self._local, "state", None)
        if state is None:
            state = _ThreadState()
            self._local.state = state
        return state

    def _ensure_browser(
        self,
        state: _ThreadState,
        headless: bool,
        browser_args: Sequence[str],
    ) -> None:
        launch_key = (headless, tuple(browser_args))
        if state.browser is not None and state.launch_key == launch_key:
            return
        if state.browser is not None:
            self._close_state(state)
        from playwright.sync_api import sync_playwright

        state.playwright = sync_playwright().start()
        state.browser = state.playwright.chromium.launch(
            headless=headless,
            args=list(browser_args),
        )
        state.launch_key = launch_key
        logger.debug("Launched Chromium (headless=%s)", headless)

    def get_context(
        self,
        *,
        headless: bool = True,
        browser_args: Sequence[str] = (),
        blocked_resources: Sequence[str] = (),
        **context_kwargs: Any,
    ) -> Any:
        state = self._state()
        self._ensure_browser(state, headless, browser_args)
        key = (tuple(blocked_resources), tuple(sorted(context_kwargs.items())))
        if key in state.contexts:
            ctx = state.contexts.pop(key)
            state.contexts[key] = ctx
            return ctx
        ctx = state.browser.new_context(**context_kwargs)
        for pattern in blocked_resources:
            ctx.route(pattern, lambda route: route.abort())
        logger.debug("Blocked %d resource patterns", len(blocked_resources))
        state.contexts[key] = ctx
        while len(state.contexts) > self._max_contexts:
            _, old = state.contexts.popitem(last=False)
            with contextlib.suppress(Exception):
                old.close()
        return ctx

    @staticmethod
    def _close_state(state: _ThreadState) -> None:
        for ctx in list(state.contexts.values()):
            with contextlib.suppress(Exception):
                ctx.close()
        state.contexts.clear()
        if state.browser is not None:
            with contextlib.suppress(Exception):
                state.browser.close()
        if state.playwright is not None:
            with contextlib.suppress(Exception):
                state.playwright.stop()
        state.browser = None
        state.playwright = None
        state.launch_key = None

    def close(self) -> None:
        state = getattr(self._local, "state", None)
        if state:
            self._close_state(state)


_GLOBAL_POOL = PlaywrightPool()


def get_playwright_pool() -> PlaywrightPool:
    return _GLOBAL_POOL


@atexit.register
def _close_pool() -> None:
    _GLOBAL_POOL.close()
