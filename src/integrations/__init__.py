"""
External delivery gateways.

This package contains adapters for the services that transmit assembled
messages.
"""
