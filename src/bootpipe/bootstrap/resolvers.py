"""Module resolution: map a PHP class identifier to the file defining it.

Resolvers are tried in registration order and the first one that finds a
file wins, the same precedence Composer's class loader uses (class map,
then PSR-4, then PSR-0).
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, Protocol

from tree_sitter import Node

from bootpipe.bootstrap.namespaces import LITERAL_TYPES
from bootpipe.bootstrap.parser import node_text, parse, walk
from bootpipe.errors import ConfigError
from bootpipe.paths import INSTALLED_PACKAGES_FILE, resolve_dir

logger = logging.getLogger(__name__)

CLASSMAP_EXTENSIONS = (".php", ".inc")
DECLARATION_TYPES = frozenset(
    {"class_declaration", "interface_declaration", "trait_declaration", "enum_declaration"}
)


class ModuleResolver(Protocol):
    """Anything that can locate the source file of a class identifier."""

    def find_file(self, identifier: str) -> Path | None: ...


def _as_list(value: str | list[str]) -> list[str]:
    return [value] if isinstance(value, str) else list(value)


class _PrefixResolver:
    """Shared prefix bookkeeping for the PSR resolvers."""

    def __init__(self) -> None:
        self._prefixes: dict[str, list[Path]] = {}

    def add(self, prefix: str, paths: Iterable[Path | str]) -> None:
        """Register directories for a namespace prefix ("" is the fallback)."""
        self._prefixes.setdefault(prefix, []).extend(Path(p) for p in paths)

    def _candidates(self, identifier: str) -> Iterable[tuple[str, Path]]:
        # Longest prefix first
        for prefix in sorted(self._prefixes, key=len, reverse=True):
            if identifier.startswith(prefix):
                for base in self._prefixes[prefix]:
                    yield prefix, base


class Psr4Resolver(_PrefixResolver):
    """PSR-4: the prefix maps to a directory, the rest maps to sub-paths."""

    def find_file(self, identifier: str) -> Path | None:
        identifier = identifier.lstrip("\\")
        for prefix, base in self._candidates(identifier):
            remainder = identifier[len(prefix) :].replace("\\", "/") + ".php"
            candidate = base / remainder
            if candidate.is_file():
                return candidate
        return None


class Psr0Resolver(_PrefixResolver):
    """PSR-0: the full identifier maps to a path, underscores in the class
    name become directory separators."""

    def find_file(self, identifier: str) -> Path | None:
        identifier = identifier.lstrip("\\")
        namespace, _, class_name = identifier.rpartition("\\")
        logical = class_name.replace("_", "/") + ".php"
        if namespace:
            logical = namespace.replace("\\", "/") + "/" + logical

        for _prefix, base in self._candidates(identifier):
            candidate = base / logical
            if candidate.is_file():
                return candidate
        return None


def _declarations(node: Node, source: bytes, namespace: str) -> Iterator[str]:
    for child in walk(node, skip=LITERAL_TYPES):
        if child.type in DECLARATION_TYPES:
            name = child.child_by_field_name("name")
            if name is not None:
                text = node_text(name, source)
                yield f"{namespace}\\{text}" if namespace else text


def find_declared_classes(source: str) -> list[str]:
    """List the fully qualified classes, interfaces, traits and enums a file declares.

    Files with syntax errors are scanned as far as tree-sitter recovers them.
    """
    data = source.encode("utf-8")
    root = parse(data).root_node
    namespace = ""
    declared: list[str] = []

    for node in root.children:
        if node.type != "namespace_definition":
            declared.extend(_declarations(node, data, namespace))
            continue
        name = node.child_by_field_name("name")
        current = node_text(name, data) if name is not None else ""
        body = node.child_by_field_name("body")
        if body is None:
            # Statement form applies to everything that follows
            namespace = current
        else:
            declared.extend(_declarations(body, data, current))

    return declared


class ClassMapResolver:
    """Explicit identifier -> file map, optionally built by scanning paths."""

    def __init__(self, mapping: dict[str, Path] | None = None) -> None:
        self.mapping: dict[str, Path] = dict(mapping or {})

    def find_file(self, identifier: str) -> Path | None:
        return self.mapping.get(identifier.lstrip("\\"))

    def scan(self, paths: Iterable[Path]) -> None:
        """Add every class declared in the given files and directories.

        Earlier entries win over later ones for the same identifier.
        """
        for path in paths:
            if path.is_dir():
                files = sorted(
                    p for p in path.rglob("*") if p.suffix in CLASSMAP_EXTENSIONS and p.is_file()
                )
            elif path.is_file():
                files = [path]
            else:
                logger.debug(f"Class map path does not exist: {path}")
                continue

            for file in files:
                try:
                    source = file.read_text(encoding="utf-8", errors="replace")
                except OSError as e:
                    logger.warning(f"Skipping unreadable class map file {file}: {e}")
                    continue
                for identifier in find_declared_classes(source):
                    self.mapping.setdefault(identifier, file)


class ResolverChain:
    """Ordered resolvers; the first registered one that finds a file wins."""

    def __init__(self, resolvers: Iterable[ModuleResolver] = ()) -> None:
        self.resolvers: list[ModuleResolver] = list(resolvers)

    def register(self, resolver: ModuleResolver) -> None:
        self.resolvers.append(resolver)

    def find_file(self, identifier: str) -> Path | None:
        for resolver in self.resolvers:
            found = resolver.find_file(identifier)
            if found is not None:
                return found
        return None

    def __len__(self) -> int:
        return len(self.resolvers)


def load_installed_packages(vendor_dir: Path) -> list[dict[str, Any]]:
    """Read Composer's installed package metadata.

    Both the Composer 1 format (a list) and the Composer 2 format (an
    object with a ``packages`` list) are accepted. A missing file means no
    installed packages.

    Raises:
        ConfigError: If the file exists but cannot be parsed
    """
    path = vendor_dir / INSTALLED_PACKAGES_FILE
    if not path.exists():
        logger.debug(f"No installed package metadata at {path}")
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(f"Could not read {path}: {e}", path=str(path)) from e

    if isinstance(data, dict):
        data = data.get("packages", [])
    if not isinstance(data, list):
        raise ConfigError(f"Unexpected package metadata format in {path}", path=str(path))
    return [package for package in data if isinstance(package, dict)]


def _install_path(package: dict[str, Any], vendor_dir: Path) -> Path:
    install_path = package.get("install-path")
    if install_path:
        # Relative to vendor/composer
        return Path(os.path.normpath(vendor_dir / "composer" / install_path))
    return vendor_dir / package.get("name", "")


def composer_resolver(
    project_root: Path | str = ".",
    vendor_dir: Path | str = "vendor",
    root_autoload: dict[str, Any] | None = None,
) -> ResolverChain:
    """Build the resolver chain for a Composer managed project.

    Args:
        project_root: Project root directory
        vendor_dir: Vendor directory, relative to the project root
        root_autoload: The root composer.json ``autoload`` section

    Returns:
        Class map, PSR-4 and PSR-0 resolvers, in that order
    """
    root = Path(project_root).resolve()
    vendor = resolve_dir(vendor_dir, root)

    class_map = ClassMapResolver()
    psr4 = Psr4Resolver()
    psr0 = Psr0Resolver()

    def register(autoload: dict[str, Any], base: Path) -> None:
        for prefix, paths in (autoload.get("psr-4") or {}).items():
            psr4.add(prefix, [base / p for p in _as_list(paths)])
        for prefix, paths in (autoload.get("psr-0") or {}).items():
            psr0.add(prefix, [base / p for p in _as_list(paths)])
        class_map.scan(base / p for p in autoload.get("classmap") or [])

    if root_autoload:
        register(root_autoload, root)

    packages = load_installed_packages(vendor)
    for package in packages:
        register(package.get("autoload") or {}, _install_path(package, vendor))

    logger.debug(f"Loaded autoload rules from {len(packages)} installed packages")
    return ResolverChain([class_map, psr4, psr0])


__all__ = [
    "ModuleResolver",
    "Psr4Resolver",
    "Psr0Resolver",
    "ClassMapResolver",
    "ResolverChain",
    "find_declared_classes",
    "load_installed_packages",
    "composer_resolver",
]
