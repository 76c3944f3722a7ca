"""
Document store contract used by the profile and global aggregation services.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

USER_COLLECTION = 'user'
GLOBAL_COLLECTION = 'global'
GLOBAL_DOCUMENT_ID = 'global'


class DocumentStoreError(Exception):
    """Base exception for document store failures."""
    pass


class DocumentStore(ABC):
    """Keyed documents with single-document atomic update operators.

    ``upsert`` creates the document when absent and applies, in order:
    ``set_fields`` (overwrite), ``push`` (append to array fields, each optionally
    capped to its trailing ``push_slice[field]`` items) and ``add_to_set`` (append
    values not already present). The updated document is returned.
    """

    @abstractmethod
    def find_one(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored document or None when absent."""

    @abstractmethod
    def upsert(self,
               collection: str,
               doc_id: str,
               set_fields: Optional[Dict[str, Any]] = None,
               push: Optional[Dict[str, List[Any]]] = None,
               add_to_set: Optional[Dict[str, List[Any]]] = None,
               push_slice: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """Atomically create or update one document."""
