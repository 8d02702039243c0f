"""Tests for CardArena."""
