"""Container engine and registry module.

This module handles:
- Image reference parsing and composition
- Registry manifest inspection and digest resolution
- Image engine access (build, pull, push, tag, inspect)
- Per-run digest caching
"""

# Submodules are imported directly (container_imagegen.docker.engine, etc.)
# since the manifest model depends on docker.names.
