"""Tests for the Cinema Show pipeline."""
