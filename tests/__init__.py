"""
FMM Test Suite

Tests for the 2D Fast Multipole Method implementation.
"""
