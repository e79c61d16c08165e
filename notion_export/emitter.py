"""
File emission: slugs, front matter and writing Markdown documents.
"""

import json
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .exceptions import SlugCollisionError

FALLBACK_SLUG = "untitled-page"


def slugify_title(title: str) -> str:
    """
    Generate a file-name-safe slug from a page title.

    Examples:
        "Hello, World!" -> "hello-world"
        "Git & GitHub" -> "git-github"
        "Café au lait" -> "cafe-au-lait"
    """
    slug = unicodedata.normalize("NFKD", title)
    slug = slug.encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^\w\s-]", "", slug)  # Remove special chars
    slug = re.sub(r"[\s_-]+", "-", slug.strip())  # Whitespace/hyphen runs to one hyphen
    slug = slug.strip("-").lower()

    return slug or FALLBACK_SLUG


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC instant with millisecond precision, e.g. ``2024-01-01T12:00:00.000Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _escape_yaml(value: str) -> str:
    """Escape characters that would break inline double-quoted YAML strings."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


@dataclass
class MarkdownDocument:
    """A page ready to be written: front matter fields plus body."""

    title: str
    date: datetime
    body: str = ""
    description: Optional[str] = None
    draft: bool = False

    def front_matter(self) -> str:
        """Front matter block, fields in fixed order, ending with a newline."""
        lines = [
            "---",
            f'title: "{_escape_yaml(self.title)}"',
            f'date: "{format_timestamp(self.date)}"',
            f"draft: {'true' if self.draft else 'false'}",
        ]
        if self.description:
            lines.append(f"description: {json.dumps(self.description, ensure_ascii=False)}")
        lines.append("---")
        return "\n".join(lines) + "\n"

    def render(self) -> str:
        """Front matter, one blank line, then the body."""
        if not self.body:
            return self.front_matter()
        return f"{self.front_matter()}\n{self.body}\n"


def prepare_output_dir(output_dir: Path) -> list[Path]:
    """
    Make ``output_dir`` ready for a fresh export.

    Creates the directory (with parents) if missing; otherwise deletes every
    file directly inside it. Subdirectories are left untouched.

    Returns:
        Paths of the removed files.
    """
    if not output_dir.exists():
        output_dir.mkdir(parents=True)
        return []

    removed = []
    for path in sorted(output_dir.iterdir()):
        if path.is_file() or path.is_symlink():
            path.unlink()
            removed.append(path)

    return removed


def write_document(path: Path, document: MarkdownDocument) -> Path:
    """Write a document as UTF-8, replacing any existing file."""
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(document.render())
    return path


class SlugRegistry:
    """
    Tracks slugs used during one run and applies the collision policy.

    Policies:
        suffix: append ``-2``, ``-3``... until the slug is free.
        overwrite: reuse the slug; the later page replaces the earlier file.
        error: raise SlugCollisionError.
    """

    def __init__(self, policy: str = "suffix"):
        self.policy = policy
        self._owners: dict[str, str] = {}

    def claim(self, title: str) -> tuple[str, Optional[str]]:
        """
        Reserve a slug for ``title``.

        Returns:
            Tuple of (slug, title of the page previously holding the base
            slug, or None when there was no collision).
        """
        base = slugify_title(title)
        previous = self._owners.get(base)

        if previous is None:
            self._owners[base] = title
            return base, None

        if self.policy == "error":
            raise SlugCollisionError(
                f"'{title}' and '{previous}' both map to {base}.md"
            )

        if self.policy == "overwrite":
            self._owners[base] = title
            return base, previous

        counter = 2
        while f"{base}-{counter}" in self._owners:
            counter += 1
        slug = f"{base}-{counter}"
        self._owners[slug] = title
        return slug, previous
