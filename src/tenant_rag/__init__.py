"""
tenant_rag — multi-tenant document ingestion and grounded retrieval.

Uploaded text is chunked, embedded in the background and stored per
tenant; queries are embedded, matched by cosine similarity and turned
into an answer only when the retrieved passages are trustworthy enough.
"""

__version__ = "0.1.0"
