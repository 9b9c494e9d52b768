"""
Prismatik API Client

A client for the Prismatik (Lightpack API) text control protocol used to
operate ambient-lighting devices, with session tracing for debugging.
"""

__version__ = "1.0.0"
__description__ = "Client for the Prismatik (Lightpack API) control protocol"
