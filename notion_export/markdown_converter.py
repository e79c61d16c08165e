"""
Notion blocks to Markdown converter.

Converts Notion's block structure to Markdown suitable for a static
site generator. Handles all common block types including:
- Text blocks (paragraphs, headings, quotes, callouts)
- Lists (bulleted, numbered, to-do, toggle)
- Code blocks (with language mapping)
- Media (images, videos, files, embeds), linked rather than downloaded
- Tables and column layouts
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .notion_api import NotionAPI, NotionBlock, plain_text

LIST_TYPES = {"bulleted_list_item", "numbered_list_item", "to_do"}

# Notion language names that differ from common fence info strings
LANGUAGE_MAP = {
    "plain text": "",
    "c++": "cpp",
    "c#": "csharp",
    "f#": "fsharp",
    "shell": "bash",
    "objective-c": "objectivec",
    "visual basic": "vb",
}


@dataclass
class ConversionContext:
    """State carried while converting one level of blocks."""

    numbered_list_counter: int = 0


class MarkdownConverter:
    """
    Converts Notion blocks to Markdown.

    Handles recursive block structures and maintains proper formatting.
    """

    def __init__(self, notion_api: NotionAPI):
        self.notion_api = notion_api

        self._handlers: dict[str, Callable[[NotionBlock, ConversionContext], Optional[str]]] = {
            "paragraph": self._convert_paragraph,
            "heading_1": self._convert_heading,
            "heading_2": self._convert_heading,
            "heading_3": self._convert_heading,
            "bulleted_list_item": self._convert_list_item,
            "numbered_list_item": self._convert_list_item,
            "to_do": self._convert_list_item,
            "toggle": self._convert_toggle,
            "code": self._convert_code,
            "quote": self._convert_quote,
            "callout": self._convert_quote,
            "divider": lambda block, context: "---",
            "image": self._convert_image,
            "video": self._convert_media,
            "file": self._convert_media,
            "pdf": self._convert_media,
            "audio": self._convert_media,
            "embed": self._convert_link,
            "bookmark": self._convert_link,
            "link_preview": self._convert_link,
            "table": self._convert_table,
            "column_list": self._convert_column_list,
            "child_page": self._convert_child_reference,
            "child_database": self._convert_child_reference,
            "synced_block": self._convert_container,
            "column": self._convert_container,
            "equation": self._convert_equation,
            "breadcrumb": lambda block, context: None,
            "table_of_contents": lambda block, context: None,
        }

    def convert_page(self, page_id: str) -> str:
        """
        Fetch a page's block tree and convert it to Markdown.

        Raises:
            RemoteError: If fetching blocks fails.
        """
        return self.convert(self.notion_api.get_page_blocks(page_id))

    def convert(self, blocks: list[NotionBlock]) -> str:
        """Convert a list of top-level Notion blocks to Markdown."""
        context = ConversionContext()

        lines = []
        prev_block_type = None

        for block in blocks:
            if block.type != "numbered_list_item":
                context.numbered_list_counter = 0

            markdown = self._convert_block(block, context)
            if markdown is None:
                continue

            if prev_block_type and self._needs_spacing(prev_block_type, block.type):
                lines.append("")
            lines.append(markdown)

            prev_block_type = block.type

        return self._normalize_whitespace("\n".join(lines))

    def _convert_block(self, block: NotionBlock, context: ConversionContext) -> Optional[str]:
        handler = self._handlers.get(block.type)
        if handler:
            return handler(block, context)
        return f"<!-- Unsupported block type: {block.type} -->"

    def _convert_children(
        self,
        blocks: list[NotionBlock],
        context: ConversionContext,
        indent: bool = True,
    ) -> str:
        """Convert child blocks, indenting them under their parent."""
        # nested lists keep their own numbering
        nested = ConversionContext()

        lines = []
        for block in blocks:
            if block.type != "numbered_list_item":
                nested.numbered_list_counter = 0

            markdown = self._convert_block(block, nested)
            if markdown is None:
                continue
            lines.append(self._indent_text(markdown, 1) if indent else markdown)

        return "\n".join(lines)

    # =========================================================================
    # Rich text handling
    # =========================================================================

    def _rich_text_to_markdown(self, rich_text: list[dict]) -> str:
        """Convert Notion rich text array to markdown string."""
        parts = []
        for text_obj in rich_text or []:
            content = text_obj.get("plain_text", "")
            annotations = text_obj.get("annotations", {})
            href = text_obj.get("href")

            if text_obj.get("type") == "equation":
                parts.append(f"${content}$")
                continue

            if annotations.get("code"):
                content = f"`{content}`"
            if annotations.get("bold"):
                content = f"**{content}**"
            if annotations.get("italic"):
                content = f"*{content}*"
            if annotations.get("strikethrough"):
                content = f"~~{content}~~"
            if annotations.get("underline"):
                content = f"<u>{content}</u>"

            if href:
                content = f"[{content}]({href})"

            parts.append(content)

        return "".join(parts)

    def _text(self, block: NotionBlock) -> str:
        return self._rich_text_to_markdown(block.content.get("rich_text", []))

    def _caption(self, block: NotionBlock) -> str:
        return self._rich_text_to_markdown(block.content.get("caption", []))

    # =========================================================================
    # Block type handlers
    # =========================================================================

    def _convert_paragraph(self, block: NotionBlock, context: ConversionContext) -> str:
        text = self._text(block)
        if block.children:
            return f"{text}\n{self._convert_children(block.children, context)}"
        return text

    def _convert_heading(self, block: NotionBlock, context: ConversionContext) -> str:
        level = int(block.type[-1])
        heading = f"{'#' * level} {self._text(block)}"

        # Toggleable headings carry their section as children
        if block.children:
            children = self._convert_children(block.children, context, indent=False)
            return f"{heading}\n\n{children}"

        return heading

    def _convert_list_item(self, block: NotionBlock, context: ConversionContext) -> str:
        text = self._text(block)

        if block.type == "numbered_list_item":
            context.numbered_list_counter += 1
            result = f"{context.numbered_list_counter}. {text}"
        elif block.type == "to_do":
            checkbox = "[x]" if block.content.get("checked") else "[ ]"
            result = f"- {checkbox} {text}"
        else:
            result = f"- {text}"

        if block.children:
            result = f"{result}\n{self._convert_children(block.children, context)}"

        return result

    def _convert_toggle(self, block: NotionBlock, context: ConversionContext) -> str:
        """Convert toggle block to details/summary HTML."""
        result = f"<details>\n<summary>{self._text(block)}</summary>\n"

        if block.children:
            children = self._convert_children(block.children, context, indent=False)
            result += f"\n{children}\n"

        return result + "</details>"

    def _convert_code(self, block: NotionBlock, context: ConversionContext) -> str:
        # code is taken verbatim, annotations would corrupt it
        code = plain_text(block.content.get("rich_text", []))
        language = block.content.get("language", "").lower()
        lang = LANGUAGE_MAP.get(language, language)

        result = f"```{lang}\n{code}\n```"

        caption = self._caption(block)
        if caption:
            result += f"\n*{caption}*"

        return result

    def _convert_quote(self, block: NotionBlock, context: ConversionContext) -> str:
        """Convert quote and callout blocks to blockquotes."""
        text = self._text(block)

        icon = block.content.get("icon") or {}
        if block.type == "callout" and icon.get("type") == "emoji":
            text = f"{icon['emoji']} {text}"

        lines = text.split("\n")
        if block.children:
            lines += self._convert_children(block.children, context, indent=False).split("\n")

        return "\n".join(f"> {line}".rstrip() for line in lines)

    def _convert_image(self, block: NotionBlock, context: ConversionContext) -> str:
        url = _file_url(block.content)
        if not url:
            return "<!-- Image URL not found -->"

        caption = self._caption(block)
        result = f"![{caption or 'Image'}]({url})"

        if caption:
            result += f"\n*{caption}*"

        return result

    def _convert_media(self, block: NotionBlock, context: ConversionContext) -> str:
        """Convert video, file, pdf and audio blocks to links."""
        url = _file_url(block.content)
        if not url:
            return f"<!-- {block.type.capitalize()} not found -->"

        labels = {"video": "Video", "file": "File", "pdf": "PDF Document", "audio": "Audio"}
        name = block.content.get("name") or labels[block.type]
        result = f"[{name}]({url})"

        caption = self._caption(block)
        if caption:
            result += f"\n*{caption}*"

        return result

    def _convert_link(self, block: NotionBlock, context: ConversionContext) -> str:
        """Convert embed, bookmark and link preview blocks."""
        url = block.content.get("url", "")
        caption = self._caption(block)
        return f"[{caption or url}]({url})"

    def _convert_table(self, block: NotionBlock, context: ConversionContext) -> str:
        rows = [child for child in block.children if child.type == "table_row"]
        if not rows:
            return "<!-- Empty table -->"

        has_header = block.content.get("has_column_header", False)
        lines = []

        for i, row_block in enumerate(rows):
            cells = row_block.content.get("cells", [])
            row_text = " | ".join(
                self._rich_text_to_markdown(cell).replace("|", "\\|") for cell in cells
            )
            lines.append(f"| {row_text} |")

            if i == 0 and has_header:
                separator = " | ".join("---" for _ in cells)
                lines.append(f"| {separator} |")

        return "\n".join(lines)

    def _convert_column_list(self, block: NotionBlock, context: ConversionContext) -> str:
        """Flatten columns into sequential content."""
        parts = [
            self._convert_children(column.children, context, indent=False)
            for column in block.children
            if column.children
        ]
        return "\n\n".join(parts)

    def _convert_container(self, block: NotionBlock, context: ConversionContext) -> str:
        return self._convert_children(block.children, context, indent=False)

    def _convert_child_reference(self, block: NotionBlock, context: ConversionContext) -> str:
        title = block.content.get("title") or "Untitled"
        kind = "subpage" if block.type == "child_page" else "database"
        return f"**{title}** ({kind})"

    def _convert_equation(self, block: NotionBlock, context: ConversionContext) -> str:
        """Convert equation block (LaTeX)."""
        return f"$$\n{block.content.get('expression', '')}\n$$"

    # =========================================================================
    # Utilities
    # =========================================================================

    def _needs_spacing(self, prev_type: str, curr_type: str) -> bool:
        """Determine if a blank line is needed between two block types."""
        if prev_type in LIST_TYPES and curr_type in LIST_TYPES:
            return prev_type != curr_type
        # separate everything else so Markdown keeps paragraphs apart
        return True

    def _indent_text(self, text: str, level: int) -> str:
        indent = "  " * level  # 2 spaces per level
        return "\n".join(f"{indent}{line}" if line else line for line in text.split("\n"))

    def _normalize_whitespace(self, content: str) -> str:
        """Strip trailing spaces and collapse runs of blank lines."""
        lines = [line.rstrip() for line in content.split("\n")]

        result = []
        blank_count = 0

        for line in lines:
            if not line:
                blank_count += 1
                if blank_count <= 2:
                    result.append(line)
            else:
                blank_count = 0
                result.append(line)

        return "\n".join(result).strip()


def _file_url(content: dict) -> Optional[str]:
    """URL of a Notion-hosted or external file object."""
    file_type = content.get("type")
    if file_type in ("external", "file"):
        return content.get(file_type, {}).get("url")
    return None
