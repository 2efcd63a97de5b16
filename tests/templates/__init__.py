"""Tests for jirabridge.templates."""
