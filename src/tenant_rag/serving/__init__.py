"""
Serving — FastAPI application exposing the knowledge base over HTTP.

Upload and query endpoints are scoped per tenant; document text is
expected already extracted from its source file.
"""
