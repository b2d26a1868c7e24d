"""Fill in the resolved dependencies of installed manifest entries."""
import logging

from rock_index.deps.resolver import DependencyResolver
from rock_index.manifest.schemas import Manifest

logger = logging.getLogger(__name__)


def update_dependencies(manifest: Manifest, deps_mode: str, resolver: DependencyResolver) -> None:
    """Recompute the dependency chain of every installed package.

    Inconsistencies are logged, never raised: a package without a rockspec
    is reported as a tree inconsistency, and unresolved dependencies are
    reported unless deps_mode is "none".

    Args:
        manifest: Manifest to update in place
        deps_mode: "one", "all", "order" or "none"
        resolver: Dependency resolver used for each package
    """
    for name, version, entry in manifest.entries():
        if not entry.is_installed:
            continue
        current = f"{name} {version}"
        dependencies, missing = resolver.scan(manifest, name, version, deps_mode)
        dependencies.pop(name, None)
        entry.dependencies = dependencies
        for miss, err in (missing or {}).items():
            if miss == current:
                logger.warning(f"Tree inconsistency detected: {current} has no rockspec. {err}")
            elif deps_mode != "none":
                logger.warning(f"Missing dependency for {name} {version}: {miss}")
