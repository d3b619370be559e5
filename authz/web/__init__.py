"""Tornado integration: runs authorization pipelines in front of request handlers."""
