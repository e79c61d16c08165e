from datetime import datetime, timezone

import pytest

from notion_export.config import Config
from tests.helpers import PARENT_ID

ENV_VARS = (
    "NOTION_TOKEN",
    "NOTION_DATABASE_ID",
    "NOTION_PARENT_PAGE_ID",
    "EXPORT_OUTPUT_DIR",
    "NOTION_STATUS_PROPERTY",
    "NOTION_STATUS_TYPE",
    "NOTION_PUBLISHED_VALUE",
    "NOTION_TITLE_PROPERTY",
    "EXPORT_DATE_SOURCE",
    "EXPORT_SLUG_COLLISION",
    "DEBUG",
    "DRY_RUN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        notion_token="secret_test",
        parent_page_id=PARENT_ID,
        output_dir=tmp_path / "content" / "posts",
    )
