# =============================================================================
# tests/ - Test Suite
# =============================================================================
# This package contains all tests for the Verifolio API:
# - conftest.py: in-memory Supabase, authenticated TestClient, seed rows
# - test_numbering.py / test_variables.py: pure lib/ helpers
# - test_<feature>.py: service logic and HTTP endpoints per feature
# - test_auth_errors.py: JWT verification, error envelope, health
# - test_workers.py: Celery trash purge
#
# Run tests with: pytest
# =============================================================================
