"""Exam regrading and cross-version item analysis."""
