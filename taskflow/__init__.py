"""Notification fan-out and delivery pipeline for the Taskflow tracker."""
