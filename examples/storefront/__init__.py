"""
Storefront — a scripted checkout over the in-memory collaborators.

Run: python -m examples.storefront.main
"""
