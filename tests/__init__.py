"""
Enclave Test Suite.

This package contains automated tests for:
- Navigation tree building and menu management
- Mission, character and class import with fuzzy character matching
- Access rules for pages, rules PDFs and classes
- Accounts, unlock codes, LFG posts and PDF storage

Run tests with: pytest
Run with coverage: pytest --cov=enclave
"""
