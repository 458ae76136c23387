"""End-to-end feature tests that walk a full listing and sale.

Tests are named after the acceptance criteria they check (test_ac_1_*).
"""
