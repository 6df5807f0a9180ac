"""The fixed, ordered list of classes aggregated into the bootstrap artifact.

Order matters: classes are defined in the order listed, and a class must
come after the interfaces and parents it needs. Nothing here is derived
from declared dependencies.
"""

from __future__ import annotations

from bootpipe.bootstrap.resolvers import ModuleResolver

BOOTSTRAP_MODULES: tuple[str, ...] = (
    "Symfony\\Component\\HttpFoundation\\ParameterBag",
    "Symfony\\Component\\HttpFoundation\\HeaderBag",
    "Symfony\\Component\\HttpFoundation\\FileBag",
    "Symfony\\Component\\HttpFoundation\\ServerBag",
    "Symfony\\Component\\HttpFoundation\\Request",
    "Symfony\\Component\\HttpFoundation\\Response",
    "Symfony\\Component\\HttpFoundation\\ResponseHeaderBag",
    "Symfony\\Component\\DependencyInjection\\ContainerAwareInterface",
    # ContainerAware is excluded: annotation scanning would parse the
    # whole compiled file
    "Symfony\\Component\\DependencyInjection\\Container",
    "Symfony\\Component\\HttpKernel\\Kernel",
    "Symfony\\Component\\ClassLoader\\ClassCollectionLoader",
    "Symfony\\Component\\ClassLoader\\ApcClassLoader",
    "Symfony\\Component\\HttpKernel\\Bundle\\Bundle",
    "Symfony\\Component\\Config\\ConfigCache",
    # FrameworkBundle is excluded: console commands are discovered from
    # the path of its class file
)

# Exactly one of these closes the list
FRAMEWORK_HTTP_KERNEL = "Symfony\\Bundle\\FrameworkBundle\\HttpKernel"
CONTAINER_AWARE_HTTP_KERNEL = (
    "Symfony\\Component\\HttpKernel\\DependencyInjection\\ContainerAwareHttpKernel"
)


def detect_framework_kernel(resolver: ModuleResolver) -> bool:
    """Probe once whether the framework bundle's HttpKernel is installed."""
    return resolver.find_file(FRAMEWORK_HTTP_KERNEL) is not None


def bootstrap_modules(framework_kernel_available: bool) -> list[str]:
    """Return the module list for the given capability flag."""
    modules = list(BOOTSTRAP_MODULES)
    if framework_kernel_available:
        modules.append(FRAMEWORK_HTTP_KERNEL)
    else:
        modules.append(CONTAINER_AWARE_HTTP_KERNEL)
    return modules


__all__ = [
    "BOOTSTRAP_MODULES",
    "FRAMEWORK_HTTP_KERNEL",
    "CONTAINER_AWARE_HTTP_KERNEL",
    "detect_framework_kernel",
    "bootstrap_modules",
]
