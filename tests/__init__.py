"""
Test suite for the order board backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_card_store.py -v
"""
