"""
Test suite for the cotton trading backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_lot_allocator.py -v
"""
