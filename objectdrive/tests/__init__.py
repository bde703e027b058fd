"""Test suite for the object drive."""
