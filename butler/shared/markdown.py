"""
Markdown to Notion Rich Text

Converts a markdown message (as written in Telegram or by hand) into
Notion rich text segments. Emphasis, strikethrough, inline code and links
become annotations; block structure is flattened into lines.

Segments never exceed the Notion rich text limit.
"""

from typing import Any

from markdown_it import MarkdownIt

from butler.shared.models.properties import RICH_TEXT_LIMIT

_parser = MarkdownIt("commonmark").enable("strikethrough")

# Inline tag -> Notion annotation
ANNOTATION_TAGS = {
    "strong": "bold",
    "em": "italic",
    "s": "strikethrough",
}

# (content, annotations, link url)
Span = tuple[str, frozenset[str], str | None]


def _annotations(names: frozenset[str]) -> dict[str, Any]:
    return {
        "bold": "bold" in names,
        "italic": "italic" in names,
        "strikethrough": "strikethrough" in names,
        "underline": False,
        "code": "code" in names,
        "color": "default",
    }


def _inline_spans(children: list[Any]) -> list[Span]:
    spans: list[Span] = []
    active: set[str] = set()
    link: str | None = None

    for token in children:
        tag_kind = ANNOTATION_TAGS.get(token.tag)
        if token.type.endswith("_open") and tag_kind:
            active.add(tag_kind)
        elif token.type.endswith("_close") and tag_kind:
            active.discard(tag_kind)
        elif token.type == "link_open":
            link = token.attrGet("href")
        elif token.type == "link_close":
            link = None
        elif token.type in ("softbreak", "hardbreak"):
            spans.append(("\n", frozenset(active), link))
        elif token.type == "code_inline":
            spans.append((token.content, frozenset(active | {"code"}), link))
        elif token.type in ("text", "html_inline", "image"):
            spans.append((token.content, frozenset(active), link))

    return spans


def _block_spans(content: str) -> list[Span]:
    spans: list[Span] = []
    prefix = ""

    for token in _parser.parse(content):
        if token.type == "list_item_open":
            prefix = f"{token.info}. " if token.info else "• "
            continue

        if token.type == "inline":
            block = _inline_spans(token.children or [])
        elif token.type in ("fence", "code_block"):
            block = [(token.content.rstrip("\n"), frozenset({"code"}), None)]
        elif token.type == "html_block":
            block = [(token.content.rstrip("\n"), frozenset(), None)]
        else:
            continue

        if spans:
            spans.append(("\n", frozenset(), None))
        if prefix:
            spans.append((prefix, frozenset(), None))
            prefix = ""
        spans.extend(block)

    return spans


def _merge(spans: list[Span]) -> list[Span]:
    merged: list[Span] = []
    for text, names, link in spans:
        if not text:
            continue
        if merged and merged[-1][1:] == (names, link):
            merged[-1] = (merged[-1][0] + text, names, link)
        else:
            merged.append((text, names, link))
    return merged


def markdown_rich_text(content: str) -> list[dict[str, Any]]:
    """
    Convert markdown into Notion rich text segments.

    Args:
        content: Markdown source

    Returns:
        List of ``text`` rich text objects with annotations, each at most
        RICH_TEXT_LIMIT characters long
    """
    segments: list[dict[str, Any]] = []

    for text, names, link in _merge(_block_spans(content)):
        for i in range(0, len(text), RICH_TEXT_LIMIT):
            segments.append({
                "type": "text",
                "text": {
                    "content": text[i : i + RICH_TEXT_LIMIT],
                    "link": {"url": link} if link else None,
                },
                "annotations": _annotations(names),
            })

    return segments
