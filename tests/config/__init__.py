"""Tests for jirabridge.config."""
