"""Prompt documents, blocks, versions, forks and categories."""
