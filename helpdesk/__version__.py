"""Release metadata reported by ``GET /api/version``."""

__version__ = "0.3.0"

# Filled in by the release pipeline; ``None`` for local builds.
__build_date__ = None
__commit_sha__ = None
