"""Glance API operator: drives GlanceAPI custom resources to their desired state."""
