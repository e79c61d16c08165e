"""
Content normalisation for converted page bodies.

Cleanup is expressed as an ordered list of named steps so each fix can be
tested on its own and new fixes compose with the existing ones.
"""

import re
from dataclasses import dataclass
from typing import Callable

SUMMARY_LIMIT = 250
ELLIPSIS = "..."

# normalisation is repeated until stable; this bounds pathological input
MAX_PASSES = 10

_EDGE_NOISE = re.compile(r"\A[\s\ufeff\u200b]+|[\s\ufeff\u200b]+\Z")

_FENCE_OPEN = re.compile(r"^```(?:markdown|md|yaml|yml)?[ \t]*$", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"^```[ \t]*$")

_GHOST_FRONT_MATTER = re.compile(
    r"\A(?P<fence>```(?:ya?ml)?[ \t]*\n)?"
    r"---[ \t]*\n"
    r"(?P<body>(?:[^\n]*\n)*?)"
    r"---[ \t]*(?(fence)\n```[ \t]*)(?:\n|\Z)",
    re.IGNORECASE,
)
_YAML_KEY = re.compile(r"^[A-Za-z_][\w-]*[ \t]*:")
_YAML_CONTINUATION = re.compile(r"^(?:[ \t]+\S|-[ \t]|[ \t]*$)")


@dataclass(frozen=True)
class NormalizationStep:
    """A named text transformation."""

    name: str
    func: Callable[[str], str]

    def __call__(self, text: str) -> str:
        return self.func(text)


def normalize_newlines(text: str) -> str:
    """Convert Windows and old Mac line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def trim(text: str) -> str:
    """Strip surrounding whitespace, BOM, zero-width and non-breaking spaces."""
    return _EDGE_NOISE.sub("", text)


def unwrap_code_fence(text: str) -> str:
    """
    Remove a code fence wrapping the whole document.

    Only fences without a language or marked as Markdown/YAML are removed, so
    a page that genuinely consists of a single code sample keeps its fence.
    """
    lines = text.split("\n")
    if len(lines) < 2:
        return text
    if not _FENCE_OPEN.match(lines[0]) or not _FENCE_CLOSE.match(lines[-1]):
        return text

    inner = lines[1:-1]
    nested = False
    for line in inner:
        stripped = line.strip()
        if not stripped.startswith("```"):
            continue
        if stripped != "```":
            nested = True
        elif nested:
            nested = False
        else:
            # a bare fence closes the opening one before the last line
            return text

    return "\n".join(inner)


def _looks_like_yaml(block: str) -> bool:
    lines = block.split("\n")
    if not any(_YAML_KEY.match(line) for line in lines):
        return False
    return all(_YAML_KEY.match(line) or _YAML_CONTINUATION.match(line) for line in lines)


def strip_ghost_front_matter(text: str) -> str:
    """
    Remove front matter echoed from the source page.

    The block must sit at the very start, be delimited by ``---`` lines
    (optionally inside a ```` ```yaml ```` fence) and contain only YAML-like
    lines, so a body that merely starts with a horizontal rule is left alone.
    """
    while True:
        match = _GHOST_FRONT_MATTER.match(text)
        if not match or not _looks_like_yaml(match.group("body")):
            return text
        text = text[match.end():].lstrip("\n")


DEFAULT_STEPS: tuple[NormalizationStep, ...] = (
    NormalizationStep("normalize_newlines", normalize_newlines),
    NormalizationStep("trim", trim),
    NormalizationStep("unwrap_code_fence", unwrap_code_fence),
    NormalizationStep("strip_ghost_front_matter", strip_ghost_front_matter),
    NormalizationStep("trim", trim),
)


def normalize(body: str, steps: tuple[NormalizationStep, ...] = DEFAULT_STEPS) -> str:
    """Apply ``steps`` in order, repeating until the body no longer changes."""
    for _ in range(MAX_PASSES):
        result = body
        for step in steps:
            result = step(result)
        if result == body:
            break
        body = result
    return body


def summarize(body: str, limit: int = SUMMARY_LIMIT) -> str:
    """
    Derive a short description from a normalised body.

    Returns the text up to and including the first period when it falls
    within ``limit`` characters, otherwise the first ``limit`` characters
    followed by an ellipsis.
    """
    if not body:
        return ""

    period = body.find(".")
    if 0 <= period < limit:
        return body[:period + 1]

    return body[:limit] + ELLIPSIS
