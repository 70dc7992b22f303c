"""
Document API modules.

Book-scoped document endpoints, split into focused modules.

Modules:
- document_upload: Signed upload URLs and upload completion
- document_management: Listing, metadata and deletion
- document_download: Signed download redirects
- common: Shared utilities and dependencies
"""

__all__ = []
