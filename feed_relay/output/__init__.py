"""Delivery of entries to the chat platform."""

from .slack import Deliverer, SlackClient, SlackDeliverer, build_attachment

__all__ = ["Deliverer", "SlackClient", "SlackDeliverer", "build_attachment"]
