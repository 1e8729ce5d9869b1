from __future__ import annotations

from adapters.http.part_bom_client import HttpPartBomApi
from app.config import AppSettings
from app.session import BomBrowserSession


def build_part_bom_api(settings: AppSettings) -> HttpPartBomApi:
    return HttpPartBomApi(
        settings.api.base_url,
        timeout_seconds=settings.api.timeout_seconds,
    )


def build_session(settings: AppSettings, api: HttpPartBomApi | None = None) -> BomBrowserSession:
    return BomBrowserSession(api or build_part_bom_api(settings), settings.browser)
