# Loko out-of-process test suite
#
# This package contains:
# - Stress/load tests (Locust), run against a live server
#
# Unit and API tests live in backend/tests and run with pytest.
