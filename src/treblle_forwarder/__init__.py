"""
Treblle Forwarder - captured API traffic → Treblle

Receives batched traffic-capture events, normalizes them into Treblle
payloads, masks sensitive fields and delivers them with bounded retries.
"""

__version__ = "0.6.0"

__all__ = ["__version__"]
