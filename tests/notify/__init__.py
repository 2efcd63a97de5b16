"""Tests for jirabridge.notify."""
