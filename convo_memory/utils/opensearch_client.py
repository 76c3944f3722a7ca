"""
OpenSearch client wrapper used as the profile document store.
"""

from typing import Any, Dict, List, Optional

import boto3
from opensearchpy import OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import NotFoundError, OpenSearchException
from requests_aws4auth import AWS4Auth

from .config import OpenSearchConfig
from .document_store import GLOBAL_COLLECTION, USER_COLLECTION, DocumentStore, DocumentStoreError
from .logging_config import get_logger

logger = get_logger(__name__)

# Applies $set, $push (with optional trailing slice) and $addToSet semantics in one
# document update, so concurrent writers never interleave inside a turn.
UPSERT_SCRIPT = """
for (entry in params.set_fields.entrySet()) {
  ctx._source[entry.getKey()] = entry.getValue();
}
for (entry in params.push.entrySet()) {
  String key = entry.getKey();
  if (ctx._source[key] == null) { ctx._source[key] = new ArrayList(); }
  ctx._source[key].addAll(entry.getValue());
  if (params.push_slice.containsKey(key)) {
    int limit = params.push_slice.get(key);
    List items = ctx._source[key];
    if (items.size() > limit) {
      ctx._source[key] = new ArrayList(items.subList(items.size() - limit, items.size()));
    }
  }
}
for (entry in params.add_to_set.entrySet()) {
  String key = entry.getKey();
  if (ctx._source[key] == null) { ctx._source[key] = new ArrayList(); }
  for (item in entry.getValue()) {
    if (!ctx._source[key].contains(item)) { ctx._source[key].add(item); }
  }
}
"""

INDEX_MAPPINGS = {
    USER_COLLECTION: {
        'properties': {
            'userId': {
                'type': 'keyword'
            },
            'username': {
                'type': 'keyword'
            },
            'mood': {
                'type': 'keyword'
            },
            'contextTokens': {
                'type': 'keyword'
            },
            'lastActive': {
                'type': 'date'
            },
            'lastBotResponse': {
                'type': 'text',
                'index': False
            },
            'preferences': {
                'type': 'object',
                'enabled': False
            },
            'conversationHistory': {
                'type': 'object',
                'enabled': False
            }
        }
    },
    GLOBAL_COLLECTION: {
        'properties': {
            'botPersonality': {
                'type': 'text',
                'index': False
            },
            'recentGlobalTopics': {
                'type': 'keyword'
            },
            'lastUpdate': {
                'type': 'date'
            }
        }
    }
}


class OpenSearchError(DocumentStoreError):
    """Custom exception for OpenSearch errors."""
    pass


class OpenSearchClient(DocumentStore):
    """OpenSearch document store with optional AWS authentication and error handling."""

    def __init__(self, config: OpenSearchConfig):
        """
        Initialize OpenSearch client.

        Args:
            config: OpenSearchConfig instance with connection parameters
        """
        self.config = config

        auth = None
        if config.use_aws_auth:
            credentials = boto3.Session().get_credentials()
            auth = AWS4Auth(region=config.region, service=config.aws_service, refreshable_credentials=credentials)

        endpoint = config.endpoint
        if '://' in endpoint:
            # Remove protocol if present
            endpoint = endpoint.split('://', 1)[1]

        self.client = OpenSearch(hosts=[{
            'host': endpoint,
            'port': config.port
        }],
                                 http_auth=auth,
                                 use_ssl=config.use_ssl,
                                 verify_certs=config.use_ssl,
                                 connection_class=RequestsHttpConnection)

        logger.info(f'Initialized OpenSearch client for endpoint: {config.endpoint}')

    def index_for(self, collection: str) -> str:
        return f'{self.config.index_name}_{collection}'

    def create_index_if_not_exists(self, collection: str) -> str:
        """
        Create the index backing a collection if it doesn't exist.

        Args:
            collection: USER_COLLECTION or GLOBAL_COLLECTION

        Returns:
            'exists', 'created' or 'failed'
        """
        index_name = self.index_for(collection)
        try:
            if self.client.indices.exists(index=index_name):
                logger.debug(f'Index {index_name} already exists')
                return 'exists'

            response = self.client.indices.create(index=index_name, body={'mappings': INDEX_MAPPINGS[collection]})
            if response.get('acknowledged', False):
                logger.info(f'Created index {index_name}')
                return 'created'
            return 'failed'
        except OpenSearchException as e:
            logger.error(f'Error creating index {index_name}: {e}')
            raise OpenSearchError(f'Failed to create index: {e}')

    def find_one(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a document by id.

        Args:
            collection: Collection name
            doc_id: Document id (user id, or the global document id)

        Returns:
            Document source if found, None otherwise
        """
        index_name = self.index_for(collection)
        try:
            response = self.client.get(index=index_name, id=doc_id)
            return response.get('_source')
        except NotFoundError:
            logger.debug(f'No document {doc_id} in {index_name}')
            return None
        except OpenSearchException as e:
            logger.error(f'Error getting document {doc_id} from {index_name}: {e}')
            raise OpenSearchError(f'Failed to get document: {e}')
        except Exception as e:
            logger.error(f'Unexpected error getting document {doc_id}: {e}')
            raise OpenSearchError(f'Unexpected error getting document: {e}')

    def upsert(self,
               collection: str,
               doc_id: str,
               set_fields: Optional[Dict[str, Any]] = None,
               push: Optional[Dict[str, List[Any]]] = None,
               add_to_set: Optional[Dict[str, List[Any]]] = None,
               push_slice: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """
        Create or update a document with a single scripted upsert.

        Args:
            collection: Collection name
            doc_id: Document id
            set_fields: Fields to overwrite
            push: Array fields to append to
            add_to_set: Array fields to union values into
            push_slice: Trailing window size per pushed field

        Returns:
            The updated document source
        """
        index_name = self.index_for(collection)
        body = {
            'scripted_upsert': True,
            'script': {
                'source': UPSERT_SCRIPT,
                'lang': 'painless',
                'params': {
                    'set_fields': set_fields or {},
                    'push': push or {},
                    'add_to_set': add_to_set or {},
                    'push_slice': push_slice or {}
                }
            },
            'upsert': {}
        }

        try:
            response = self.client.update(index=index_name,
                                          id=doc_id,
                                          body=body,
                                          params={
                                              '_source': 'true',
                                              'refresh': 'true',
                                              'retry_on_conflict': self.config.retry_on_conflict
                                          })
            logger.debug(f"Upserted document {doc_id} in {index_name} ({response.get('result')})")
            return response.get('get', {}).get('_source', {})
        except OpenSearchException as e:
            logger.error(f'Error upserting document {doc_id} in {index_name}: {e}')
            raise OpenSearchError(f'Failed to upsert document: {e}')
        except Exception as e:
            logger.error(f'Unexpected error upserting document {doc_id}: {e}')
            raise OpenSearchError(f'Unexpected error upserting document: {e}')

    def health_check(self) -> bool:
        """
        Perform a health check on the OpenSearch service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response = self.client.indices.exists(index=self.index_for(USER_COLLECTION))
            return response in [True, False]
        except Exception as e:
            logger.error(f'OpenSearch health check failed: {e}')
            return False
