"""Service layer for ShopSense.

This module wires the ranking algorithms to the host application's product
repository and behavior log. It exposes the search and recommendation entry
points along with configuration, structured logging and call metrics.
"""
