"""Builders for Notion API payloads used across tests."""

PARENT_ID = "27458bf5c3a480e796b4ca0c2c209df1"
DATABASE_ID = "0123456789abcdef0123456789abcdef"


def rich_text(text: str, href: str = None, **annotations) -> dict:
    return {
        "type": "text",
        "plain_text": text,
        "href": href,
        "annotations": annotations,
    }


def block(block_type: str, block_id: str = "b1", has_children: bool = False, **content) -> dict:
    return {
        "object": "block",
        "id": block_id,
        "type": block_type,
        "has_children": has_children,
        block_type: content,
    }


def paragraph(text: str, block_id: str = "b1") -> dict:
    return block("paragraph", block_id, rich_text=[rich_text(text)])


def child_page(block_id: str, title: str, created_time: str = "2023-05-01T08:30:00.000Z") -> dict:
    data = block("child_page", block_id, has_children=True, title=title)
    data["created_time"] = created_time
    data["last_edited_time"] = created_time
    return data
