"""PHP source rewriting for class-file concatenation.

Class files declare their namespace with the statement form
(``namespace Foo\\Bar;``), which cannot be mixed with other files in one
compiled unit. The rewriter turns every declaration into the braced form,
wraps namespace-less code in a global ``namespace { }`` block, strips
comments and compresses whitespace. String literals and heredocs are
copied through untouched.

Sources are parsed with tree-sitter, so only real ``namespace_definition``
nodes are rewritten and only real ``comment`` nodes are dropped.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from tree_sitter import Node

from bootpipe.bootstrap.parser import parse, parse_strict, walk
from bootpipe.errors import SourceParseError

OPEN_TAG_RE = re.compile(r"^\s*<\?php")
CLOSE_TAG_RE = re.compile(r"\?>\s*$")

# Named node types; the "string" keyword of casts and type hints is an anonymous node
LITERAL_TYPES = frozenset(
    {"string", "encapsed_string", "heredoc", "nowdoc", "shell_command_expression"}
)
# The closing label must end its line
_LINE_ENDED_LITERALS = frozenset({"heredoc", "nowdoc"})

_COMPRESS_PATTERNS = (
    (re.compile(r"^\s+", re.MULTILINE), ""),
    (re.compile(r"\s+$", re.MULTILINE), ""),
    (re.compile(r"([\n\r]+ *[\n\r]+)+"), "\n"),
    (re.compile(r"[ \t]+"), " "),
)


class _Edit(NamedTuple):
    start: int
    end: int
    replacement: bytes
    literal: str | None = None


def compress_code(code: str) -> str:
    """Trim every line and collapse blank lines and runs of blanks."""
    for pattern, replacement in _COMPRESS_PATTERNS:
        code = pattern.sub(replacement, code)
    return code


def _compress_chunk(code: str, after_literal: bool, before_literal: bool) -> str:
    """Compress code that sits next to a literal on the same line.

    The edge blanks of such a chunk separate tokens (``1 . 'x'``), so they
    are collapsed rather than trimmed.
    """
    guarded = ("\0" if after_literal else "") + code + ("\0" if before_literal else "")
    compressed = compress_code(guarded)
    start = 1 if after_literal else 0
    end = len(compressed) - 1 if before_literal else len(compressed)
    return compressed[start:end]


def _namespace_edits(namespaces: list[Node], end_of_source: int) -> list[_Edit]:
    """Turn statement-form declarations into blocks closed before the next one."""
    edits = []
    in_namespace = False

    for node in namespaces:
        if in_namespace:
            edits.append(_Edit(node.start_byte, node.start_byte, b"}\n"))
        if node.child_by_field_name("body") is not None:
            in_namespace = False
            continue
        # Replace the terminating ";" (and blanks before it) with an opening brace
        name = node.child_by_field_name("name")
        start = name.end_byte if name is not None else node.children[0].end_byte
        edits.append(_Edit(start, node.end_byte, b"\n{"))
        in_namespace = True

    if in_namespace:
        edits.append(_Edit(end_of_source, end_of_source, b"}\n"))
    return edits


def has_namespace_declaration(source: str) -> bool:
    """True if the source declares a namespace anywhere."""
    tree = parse(source.encode("utf-8"))
    return any(
        node.type == "namespace_definition" for node in walk(tree.root_node, skip=LITERAL_TYPES)
    )


def fix_namespace_declarations(source: str) -> str:
    """Rewrite namespace declarations so the source can be concatenated.

    ``namespace Foo;`` becomes ``namespace Foo\\n{`` and the block is closed
    before the next declaration or at the end of the source. Braced
    declarations are left alone. Comments are dropped; code outside string
    literals and heredocs is compressed.

    Raises:
        SourceParseError: If the source is not valid PHP
    """
    data = source.encode("utf-8")
    tree = parse_strict(data)

    edits: list[_Edit] = []
    namespaces: list[Node] = []
    for node in walk(tree.root_node, skip=LITERAL_TYPES):
        if node.type == "comment":
            edits.append(_Edit(node.start_byte, node.end_byte, b""))
        elif node.is_named and node.type in LITERAL_TYPES:
            edits.append(_Edit(node.start_byte, node.end_byte, b"", literal=node.type))
        elif node.type == "namespace_definition":
            namespaces.append(node)
    edits.extend(_namespace_edits(namespaces, len(data)))
    edits.sort(key=lambda edit: (edit.start, edit.end))

    output: list[str] = []
    chunk = bytearray()
    after_literal = False
    position = 0

    for edit in edits:
        if edit.start < position:
            # Covered by an earlier edit
            continue
        chunk += data[position : edit.start]
        position = edit.end
        if edit.literal is None:
            chunk += edit.replacement
            continue

        output.append(_compress_chunk(chunk.decode("utf-8"), after_literal, before_literal=True))
        output.append(data[edit.start : edit.end].decode("utf-8"))
        chunk = bytearray()
        if edit.literal in _LINE_ENDED_LITERALS:
            output.append("\n")
            after_literal = False
        else:
            after_literal = True

    chunk += data[position:]
    output.append(_compress_chunk(chunk.decode("utf-8"), after_literal, before_literal=False))
    return "".join(output)


def strip_tags(source: str) -> str:
    """Remove a leading open tag and a trailing close tag."""
    return CLOSE_TAG_RE.sub("", OPEN_TAG_RE.sub("", source, count=1), count=1)


def compile_sources(sources: list[tuple[str, str]]) -> str:
    """Concatenate PHP class files into one compiled unit.

    Args:
        sources: (identifier, file content) pairs in aggregation order

    Returns:
        The compiled unit, starting with ``<?php ``

    Raises:
        SourceParseError: If a file is not valid PHP
    """
    content = []
    for identifier, source in sources:
        body = strip_tags(source)
        if not has_namespace_declaration("<?php " + body):
            # Fake a namespace declaration for global code
            body = "\nnamespace\n{\n" + body + "\n}\n"
        try:
            body = fix_namespace_declarations("<?php " + body)
        except SourceParseError as e:
            raise SourceParseError(
                f'Could not parse the source of class "{identifier}": {e.message}',
                module=identifier,
                **e.context,
            ) from e
        content.append(OPEN_TAG_RE.sub("", body, count=1))

    return "<?php " + "".join(content)


__all__ = [
    "LITERAL_TYPES",
    "compress_code",
    "has_namespace_declaration",
    "fix_namespace_declarations",
    "strip_tags",
    "compile_sources",
]
