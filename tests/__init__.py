# SweetVault Test Suite
"""
Unit and scenario tests for the streaming file codec and its collaborators.

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
