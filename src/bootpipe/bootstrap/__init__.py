"""Bootstrap artifact generation.

Aggregates a fixed list of PHP classes into a single file so the front
controller loads one file instead of many.
"""

from bootpipe.bootstrap.builder import BootstrapBuilder
from bootpipe.bootstrap.modules import bootstrap_modules, detect_framework_kernel
from bootpipe.bootstrap.resolvers import ModuleResolver, ResolverChain, composer_resolver

__all__ = [
    "BootstrapBuilder",
    "ModuleResolver",
    "ResolverChain",
    "bootstrap_modules",
    "composer_resolver",
    "detect_framework_kernel",
]
