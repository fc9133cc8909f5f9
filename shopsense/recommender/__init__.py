"""Ranking algorithms for ShopSense.

This module contains the tokenizer, the heuristic query parser, the TF-IDF
vectorizer, cosine similarity and the ranking strategies. Everything here is a
pure function of the product and behavior snapshots it is given.
"""
