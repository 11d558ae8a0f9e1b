"""HTML rendering of content trees for the article read view.

`render` is a pure function: it never fetches anything and never raises on a
malformed tree. Missing attributes fall back to defaults, unknown nodes with
children render as a plain `<div>`, and unknown leaves render as nothing.
"""

from html import escape
from typing import Any

from .content import ContentNode, Mark, NodeKind, parse_node

HEADING_LEVELS = {1, 2, 3, 4, 5, 6}
DEFAULT_HEADING_LEVEL = 2

TEXT_ALIGNMENTS = {"left", "center", "right", "justify"}

SIMPLE_MARK_TAGS = {
    "bold": "strong",
    "italic": "em",
    "strike": "s",
    "underline": "u",
    "code": "code",
    "highlight": "mark",
    "subscript": "sub",
    "superscript": "sup",
}


def _attr(value: Any) -> str:
    return escape("" if value is None else str(value), quote=True)


def _align_style(node: ContentNode) -> str:
    align = node.attrs.get("textAlign")
    if align in TEXT_ALIGNMENTS and align != "left":
        return f' style="text-align: {align}"'
    return ""


def heading_level(node: ContentNode) -> int:
    level = node.attrs.get("level")
    if isinstance(level, int) and not isinstance(level, bool) and level in HEADING_LEVELS:
        return level
    return DEFAULT_HEADING_LEVEL


def wrap_mark(inner: str, mark: Mark) -> str:
    tag = SIMPLE_MARK_TAGS.get(mark.type)
    if tag:
        return f"<{tag}>{inner}</{tag}>"
    if mark.type == "link":
        href = mark.attrs.get("href") or ""
        target = mark.attrs.get("target") or "_blank"
        return f'<a href="{_attr(href)}" target="{_attr(target)}" rel="noopener noreferrer">{inner}</a>'
    return inner


def apply_marks(text: str, marks: tuple[Mark, ...]) -> str:
    # Wrapping from the last mark outwards leaves the first mark outermost.
    rendered = escape(text, quote=False)
    for mark in reversed(marks):
        rendered = wrap_mark(rendered, mark)
    return rendered


def _render_image(node: ContentNode) -> str:
    src = node.attrs.get("src") or ""
    alt = node.attrs.get("alt") or ""
    title = node.attrs.get("title")
    title_attr = f' title="{_attr(title)}"' if title else ""
    caption = f"<figcaption>{escape(str(alt), quote=False)}</figcaption>" if alt else ""
    return f'<figure><img src="{_attr(src)}" alt="{_attr(alt)}"{title_attr}>{caption}</figure>'


def _shape(node: ContentNode) -> str | tuple[str, str]:
    """HTML for a leaf, or the opening and closing tags around a container's children."""
    if node.text is not None:
        return apply_marks(node.text, node.marks)

    kind = node.kind
    if kind is NodeKind.DOC:
        return "", ""
    if kind is NodeKind.PARAGRAPH:
        return f"<p{_align_style(node)}>", "</p>"
    if kind is NodeKind.HEADING:
        level = heading_level(node)
        return f"<h{level}{_align_style(node)}>", f"</h{level}>"
    if kind is NodeKind.BLOCKQUOTE:
        return "<blockquote>", "</blockquote>"
    if kind is NodeKind.CODE_BLOCK:
        return "<pre><code>", "</code></pre>"
    if kind is NodeKind.BULLET_LIST:
        return "<ul>", "</ul>"
    if kind is NodeKind.ORDERED_LIST:
        start = node.attrs.get("start")
        start_attr = f' start="{start}"' if isinstance(start, int) and not isinstance(start, bool) and start != 1 else ""
        return f"<ol{start_attr}>", "</ol>"
    if kind is NodeKind.LIST_ITEM:
        return "<li>", "</li>"
    if kind is NodeKind.TASK_LIST:
        return '<ul class="task-list">', "</ul>"
    if kind is NodeKind.TASK_ITEM:
        checked = " checked" if node.attrs.get("checked") is True else ""
        return f'<li class="task-item"><input type="checkbox" disabled{checked}><div>', "</div></li>"
    if kind is NodeKind.IMAGE:
        return _render_image(node)
    if kind is NodeKind.HORIZONTAL_RULE:
        return "<hr>"
    if kind is NodeKind.HARD_BREAK:
        return "<br>"

    # Text nodes without text and unknown leaves both land here.
    if node.content:
        return "<div>", "</div>"
    return ""


def render_node(node: ContentNode) -> str:
    parts: list[str] = []
    # Strings on the stack are closing tags waiting for their children.
    stack: list[ContentNode | str] = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue
        shape = _shape(item)
        if isinstance(shape, str):
            parts.append(shape)
            continue
        opening, closing = shape
        parts.append(opening)
        stack.append(closing)
        stack.extend(reversed(item.content))
    return "".join(parts)


def render(root: ContentNode | dict[str, Any] | None) -> str:
    """Render a content tree (or its raw JSON) to an HTML fragment."""
    if isinstance(root, dict):
        root = parse_node(root)
    if root is None:
        return ""
    return render_node(root)
