"""PHP parsing with tree-sitter."""

from __future__ import annotations

from collections.abc import Iterator

from tree_sitter import Language, Node, Parser, Tree

from bootpipe.errors import SourceParseError

_language: Language | None = None


def _get_language() -> Language:
    """Get the PHP grammar, loading it on first use."""
    global _language
    if _language is None:
        import tree_sitter_php as tsphp

        _language = Language(tsphp.language_php())
    return _language


def parse(source: bytes) -> Tree:
    """Parse a PHP file (inline HTML and open tags included)."""
    return Parser(_get_language()).parse(source)


def walk(node: Node, skip: frozenset[str] = frozenset()) -> Iterator[Node]:
    """Yield ``node`` and its descendants in document order.

    Nodes whose type is in ``skip`` are yielded but not descended into.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if current.type not in skip:
            stack.extend(reversed(current.children))


def first_error(node: Node) -> Node | None:
    """The first ERROR or missing node under ``node``, if any."""
    if not node.has_error:
        return None
    for child in walk(node):
        if child.type == "ERROR" or child.is_missing:
            return child
    return node


def parse_strict(source: bytes) -> Tree:
    """Parse and reject sources tree-sitter could only partially recover.

    Raises:
        SourceParseError: If the tree contains a syntax error
    """
    tree = parse(source)
    error = first_error(tree.root_node)
    if error is not None:
        line = error.start_point[0] + 1
        raise SourceParseError(f"PHP syntax error on line {line}", line=line)
    return tree


def node_text(node: Node, source: bytes) -> str:
    """Extract text content of a node."""
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


__all__ = ["parse", "parse_strict", "walk", "first_error", "node_text"]
