"""Accounting-system forwarding -- Priority ERP currency rates."""

from tracker.accounting.client import ForwardingClient
from tracker.accounting.priority_client import PriorityClient

__all__ = ["ForwardingClient", "PriorityClient"]
