"""
Adapters for the external collaborators of the notification pipelines.

users: DynamoDB user and watchlist lookups
news: Finnhub market news
email: SES delivery
prompts: prompt templates
"""

__all__ = ['email', 'news', 'prompts', 'users']
