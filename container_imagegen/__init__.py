"""Container Image Generator - build orchestration for multi-platform image manifests.

This package builds, tags, pushes and catalogues container images described
by a repository manifest, and keeps the published image info record in sync
with what each build produced.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
