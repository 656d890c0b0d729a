"""Backend test suite for the record keeper.

This package contains tests organized by layer:
- Rule tests: eligibility, comparator and partition derivation (no store)
- Engine tests: insertion-time checks and partition rebuilds against SQLite
- Service tests: create/update/delete flows, locking and error handling
- API tests: FastAPI endpoints through httpx AsyncClient

Run tests with:
    pytest                          # Run all tests
    pytest -m "not api"             # Skip endpoint tests
    pytest --cov=recordkeeper       # With coverage
"""
