"""
Configuration management for the Notion export.

Loads settings from environment variables and provides a single,
validated configuration object that is passed to every component.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_OUTPUT_DIR = "content/posts"

DATE_SOURCES = ("now", "created")
COLLISION_POLICIES = ("suffix", "overwrite", "error")
STATUS_TYPES = ("select", "status")

_NOTION_ID = re.compile(r"^[0-9a-f]{32}$")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in ("true", "1", "yes")


def normalize_notion_id(value: str, name: str) -> str:
    """
    Validate a Notion ID and return it without dashes.

    Accepts both the compact 32-character form and the dashed UUID form.

    Raises:
        ConfigurationError: If the value is not a Notion ID.
    """
    clean_id = value.strip().replace("-", "").lower()
    if not _NOTION_ID.match(clean_id):
        raise ConfigurationError(
            f"{name} must be a 32-character Notion ID, got {value!r}.\n"
            "Copy it from the page or database URL (the part before '?')."
        )
    return clean_id


@dataclass
class Config:
    """
    Central configuration for the export.

    Exactly one of ``database_id`` and ``parent_page_id`` selects the page
    source for a run.
    """

    # Notion settings
    notion_token: str
    database_id: Optional[str] = None
    parent_page_id: Optional[str] = None

    # Database mode
    status_property: Optional[str] = "Status"
    status_type: str = "select"
    published_value: str = "Published"
    title_property: str = "Name"

    # Output
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    date_source: str = "now"
    slug_collision: str = "suffix"

    # Run behavior
    debug: bool = False
    dry_run: bool = False

    @property
    def source_mode(self) -> str:
        """Either ``"database"`` or ``"parent_page"``."""
        return "database" if self.database_id else "parent_page"

    @property
    def source_id(self) -> str:
        """ID of the configured page source."""
        return self.database_id or self.parent_page_id

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None, **overrides) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            env_file: Optional path to a .env file to load first.
            **overrides: Values that take precedence over the environment
                (typically CLI options). ``None`` values are ignored.

        Returns:
            Validated Config instance.

        Raises:
            ConfigurationError: If required settings are missing or invalid.
        """
        if env_file:
            load_dotenv(env_file)

        status_property = os.getenv("NOTION_STATUS_PROPERTY", "Status").strip()

        values = {
            "notion_token": os.getenv("NOTION_TOKEN", ""),
            "database_id": os.getenv("NOTION_DATABASE_ID") or None,
            "parent_page_id": os.getenv("NOTION_PARENT_PAGE_ID") or None,
            "status_property": status_property or None,
            "status_type": os.getenv("NOTION_STATUS_TYPE", "select").lower(),
            "published_value": os.getenv("NOTION_PUBLISHED_VALUE", "Published"),
            "title_property": os.getenv("NOTION_TITLE_PROPERTY", "Name"),
            "output_dir": Path(os.getenv("EXPORT_OUTPUT_DIR") or DEFAULT_OUTPUT_DIR),
            "date_source": os.getenv("EXPORT_DATE_SOURCE", "now").lower(),
            "slug_collision": os.getenv("EXPORT_SLUG_COLLISION", "suffix").lower(),
            "debug": _env_flag("DEBUG"),
            "dry_run": _env_flag("DRY_RUN"),
        }

        # A source ID given on the command line replaces both env IDs
        if overrides.get("database_id") or overrides.get("parent_page_id"):
            values["database_id"] = None
            values["parent_page_id"] = None

        values.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**values)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)

        if not self.notion_token:
            raise ConfigurationError(
                "NOTION_TOKEN environment variable is required.\n"
                "Create a Notion integration at https://www.notion.so/my-integrations"
            )

        if self.database_id and self.parent_page_id:
            raise ConfigurationError(
                "NOTION_DATABASE_ID and NOTION_PARENT_PAGE_ID are mutually exclusive.\n"
                "Set only the one matching how your pages are organised."
            )
        if not self.database_id and not self.parent_page_id:
            raise ConfigurationError(
                "Either NOTION_DATABASE_ID or NOTION_PARENT_PAGE_ID is required."
            )

        if self.database_id:
            self.database_id = normalize_notion_id(self.database_id, "NOTION_DATABASE_ID")
        if self.parent_page_id:
            self.parent_page_id = normalize_notion_id(
                self.parent_page_id, "NOTION_PARENT_PAGE_ID"
            )

        self._check_choice("EXPORT_DATE_SOURCE", self.date_source, DATE_SOURCES)
        self._check_choice("EXPORT_SLUG_COLLISION", self.slug_collision, COLLISION_POLICIES)
        self._check_choice("NOTION_STATUS_TYPE", self.status_type, STATUS_TYPES)

    @staticmethod
    def _check_choice(name: str, value: str, choices: tuple) -> None:
        if value not in choices:
            raise ConfigurationError(
                f"{name} must be one of {', '.join(choices)}; got {value!r}."
            )
