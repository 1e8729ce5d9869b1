from __future__ import annotations

import os
from collections.abc import Callable, Generator

import pytest

from app.config import ApiSettings, AppSettings, BrowserSettings
from tests.helpers.fake_part_bom_api import FakePartBomApi, sample_api


def _clear_bom_env() -> None:
    for key in list(os.environ):
        if key.startswith("BOM_"):
            os.environ.pop(key, None)


_clear_bom_env()


@pytest.fixture(autouse=True)
def clear_bom_env() -> Generator[None, None, None]:
    _clear_bom_env()
    yield
    _clear_bom_env()


@pytest.fixture
def fake_api() -> FakePartBomApi:
    return sample_api()


@pytest.fixture
def browser_settings() -> BrowserSettings:
    return BrowserSettings(
        initial_depth=1,
        expand_depth=1,
        node_limit=None,
        search_debounce_seconds=0.0,
        catalog_refresh_interval_seconds=0.0,
    )


@pytest.fixture
def browser_settings_factory(
    browser_settings: BrowserSettings,
) -> Callable[..., BrowserSettings]:
    def _factory(**overrides: object) -> BrowserSettings:
        return browser_settings.model_copy(update=overrides)

    return _factory


@pytest.fixture
def app_settings(browser_settings: BrowserSettings) -> AppSettings:
    return AppSettings(
        api=ApiSettings(base_url="http://parts.test", timeout_seconds=5.0),
        browser=browser_settings,
    )
