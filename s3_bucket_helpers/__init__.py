"""Helpers to enumerate, bulk delete and clear object storage buckets."""
from .client import ClientHandle, close_instance, create_client_context, get_instance, use_client
from .errors import BulkDeleteError, DeleteError, ScanDirectoryNotFoundError
from .models import Entry, ListParams
from .services import clear_bucket, delete_entries, list_all_objects

__all__ = [
    "BulkDeleteError",
    "ClientHandle",
    "DeleteError",
    "Entry",
    "ListParams",
    "ScanDirectoryNotFoundError",
    "clear_bucket",
    "close_instance",
    "create_client_context",
    "delete_entries",
    "get_instance",
    "list_all_objects",
    "use_client",
]
