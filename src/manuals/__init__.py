"""manuals - CLI for the Manuals documentation platform."""
from manuals.models import Device, Document, SearchResult

__version__ = "0.1.0"

# Overwritten by release builds.
__commit__ = "unknown"
__build_time__ = "unknown"

__all__ = ["Device", "Document", "SearchResult"]
