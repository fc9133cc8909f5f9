"""ShopSense: storefront search and recommendation core.

This package ranks catalog products for free-text search, "similar products"
panels, personalized recommendations and trending lists. It is consumed by a
host application that owns persistence and the HTTP surface.

Modules:
    recommender: tokenization, query parsing, TF-IDF, similarity and ranking
    service: engine orchestration, collaborator interfaces, logging, metrics
"""

__version__ = "0.1.0"
