"""
Adapters package for the offline access service.

Contains HTTP client wrappers for the remote catalog and file transfers.
These adapters encapsulate:

- Endpoint paths and request shapes
- Retry policies and per-site circuit breakers
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .ws_client import WebServiceClient
from .file_transfer import FileTransferClient, pluginfile_url

__all__ = [
    "WebServiceClient",
    "FileTransferClient",
    "pluginfile_url",
]
