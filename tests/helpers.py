"""
Shared constants for the test suite.
"""

# 2024-03-01 00:00:00 UTC
BASE_TIME = 1_709_251_200_000
