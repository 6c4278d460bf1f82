"""Capture, pipeline and remote service components."""
