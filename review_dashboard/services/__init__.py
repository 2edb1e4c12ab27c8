"""
Service layer root package.

Each subpackage implements application use-cases on top of the
repositories (``review_dashboard.repositories``) and the pydantic schemas
(``review_dashboard.schemas``):

- normalization: pure provider-to-canonical mapping and stats
- integrations: outbound Hostaway and Google Places clients
- review: ingestion, moderation and the public read path
"""
