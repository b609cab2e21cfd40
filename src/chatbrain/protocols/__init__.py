"""Protocols for pluggable components."""

from chatbrain.protocols.store import StateStore, request_save

__all__ = ["StateStore", "request_save"]
