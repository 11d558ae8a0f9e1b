"""Content tree model for article bodies.

Articles store the editor's JSON document verbatim. This module turns that raw
JSON into immutable `ContentNode` values and offers pure traversals over them.
Parsing is lenient: a malformed child is dropped, never raised on.
"""

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


class NodeKind(str, enum.Enum):
    DOC = "doc"
    TEXT = "text"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BLOCKQUOTE = "blockquote"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"
    TASK_LIST = "taskList"
    TASK_ITEM = "taskItem"
    CODE_BLOCK = "codeBlock"
    IMAGE = "image"
    HORIZONTAL_RULE = "horizontalRule"
    HARD_BREAK = "hardBreak"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: Any) -> "NodeKind":
        try:
            return cls(tag)
        except ValueError:
            return cls.UNKNOWN


BLOCK_KINDS = frozenset(
    {
        NodeKind.PARAGRAPH,
        NodeKind.HEADING,
        NodeKind.BLOCKQUOTE,
        NodeKind.LIST_ITEM,
        NodeKind.TASK_ITEM,
        NodeKind.CODE_BLOCK,
    }
)


@dataclass(frozen=True, slots=True)
class Mark:
    type: str
    attrs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ContentNode:
    type: str
    attrs: dict[str, Any] = field(default_factory=dict)
    content: tuple["ContentNode", ...] = ()
    text: str | None = None
    marks: tuple[Mark, ...] = ()

    @property
    def kind(self) -> NodeKind:
        return NodeKind.from_tag(self.type)

    @property
    def is_leaf(self) -> bool:
        return not self.content

    def attr(self, name: str, default: Any = None) -> Any:
        value = self.attrs.get(name)
        return default if value is None else value


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _parse_mark(raw: Any) -> Mark | None:
    if not isinstance(raw, dict) or not isinstance(raw.get("type"), str):
        return None
    return Mark(type=raw["type"], attrs=_as_dict(raw.get("attrs")))


def _build(raw: dict[str, Any], children: tuple[ContentNode, ...]) -> ContentNode:
    node_type = raw.get("type")
    if not isinstance(node_type, str):
        node_type = NodeKind.UNKNOWN.value

    marks: tuple[Mark, ...] = ()
    raw_marks = raw.get("marks")
    if isinstance(raw_marks, list):
        marks = tuple(mark for mark in map(_parse_mark, raw_marks) if mark is not None)

    return ContentNode(
        type=node_type,
        attrs=_as_dict(raw.get("attrs")),
        content=children,
        text=_text_of(raw),
        marks=marks,
    )


def _text_of(raw: dict[str, Any]) -> str | None:
    text = raw.get("text")
    return text if isinstance(text, str) else None


def _raw_children(raw: dict[str, Any]) -> list[dict[str, Any]]:
    # A node carries text or children, never both; text wins.
    children = raw.get("content")
    if _text_of(raw) is not None or not isinstance(children, list):
        return []
    return [child for child in children if isinstance(child, dict)]


def parse_node(raw: Any) -> ContentNode | None:
    """Build a `ContentNode` from editor JSON, or None if `raw` is not a node."""
    if not isinstance(raw, dict):
        return None

    # Pre-order listing of (raw node, parent position); built back to front so
    # every child exists before its frozen parent.
    order: list[tuple[dict[str, Any], int]] = []
    stack = [(raw, -1)]
    while stack:
        node, parent = stack.pop()
        position = len(order)
        order.append((node, parent))
        stack.extend((child, position) for child in reversed(_raw_children(node)))

    built: dict[int, list[ContentNode]] = {}
    for position in range(len(order) - 1, -1, -1):
        node, parent = order[position]
        children = tuple(reversed(built.pop(position, [])))
        built.setdefault(parent, []).append(_build(node, children))
    return built[-1][0]


def content_depth(raw: Any) -> int:
    """Nesting depth of raw editor JSON; a lone node has depth 1."""
    if not isinstance(raw, dict):
        return 0
    deepest = 0
    stack = [(raw, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in _raw_children(node))
    return deepest


def walk(root: ContentNode) -> Iterator[ContentNode]:
    """Depth-first pre-order iteration over `root` and its descendants."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.content))


def extract_image_urls(root: ContentNode | None) -> set[str]:
    if root is None:
        return set()

    urls: set[str] = set()
    for node in walk(root):
        if node.kind is NodeKind.IMAGE:
            src = node.attrs.get("src")
            if isinstance(src, str) and src:
                urls.add(src)
    return urls


def extract_text(root: ContentNode | None) -> str:
    if root is None:
        return ""

    blocks: list[str] = []
    buffer: list[str] = []

    def flush() -> None:
        cleaned = "".join(buffer).strip()
        if cleaned:
            blocks.append(cleaned)
        buffer.clear()

    # None on the stack marks the end of a block.
    stack: list[ContentNode | None] = [root]
    while stack:
        node = stack.pop()
        if node is None:
            flush()
            continue
        if node.text is not None:
            buffer.append(node.text)
            continue
        if node.kind is NodeKind.HARD_BREAK:
            buffer.append(" ")
            continue
        if node.kind in BLOCK_KINDS:
            flush()
            stack.append(None)
        stack.extend(reversed(node.content))
    flush()
    return "\n".join(blocks)
