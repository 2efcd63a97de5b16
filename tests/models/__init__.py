"""Tests for jirabridge.models."""
