"""
Domain layer for the notification pipelines.

This layer contains:
- Data models (trigger payloads, recipients, content bundles, results)
- Pipeline components (content fetcher, summarizer, dispatcher)
- Orchestration (durable steps, trigger registry, the two flows)
"""
