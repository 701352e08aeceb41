"""Source control module.

This module handles:
- Dockerfile commit URLs and GitHub web URLs
- Downloading repository archives into temporary checkouts
- Committing a single file through the GitHub API
"""

# Lazy imports for submodules to avoid circular imports
# Access via container_imagegen.git.commit, etc.
