"""
elasticcache - Elasticsearch-backed, taggable cache storage backend.

Stores cache entries as documents of one Elasticsearch index: the
identifier is the document id, tags are a keyword array and expiry is an
absolute timestamp checked at read time and swept by ``collect_garbage``.
"""

__version__ = "8.0.0"

from elasticcache.core import *  # noqa
