"""
Economic Newsletter
===================

Scheduled news ingestion for an economics newsletter:
- Multi-source RSS and NewsAPI fetching
- Economic relevance filtering, near-duplicate removal and categorization
- Redis-backed daily corpus with a deterministic keyspace and TTL policy
- Cron-scheduled digest, aggregation and cleanup jobs with status tracking
"""

__version__ = "0.1.0"
