"""Tests for jirabridge.tracker."""
