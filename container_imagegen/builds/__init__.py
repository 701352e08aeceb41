"""Build orchestration module.

This module handles:
- Build cache key computation
- FROM image tag resolution (pull, local and public tags)
- Process execution, build hooks and installed-package queries
- The build orchestrator populating image info
"""

# Lazy imports for submodules to avoid circular imports
# Access via container_imagegen.builds.service, etc.
