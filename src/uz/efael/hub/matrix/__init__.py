"""
Matrix Homeserver Integration

This package describes everything the hub needs from a Matrix homeserver connection
and the OIDC-specific logic layered on top of it.

Key Components:
- connection.py: The `HomeserverConnection` protocol, its value types and error hierarchy
- homeserver.py: Login capability discovery that degrades instead of failing
- oidc.py: Client metadata validation, registration data and the URL/callback operations
- errors.py: Domain error taxonomy and the translation from connection-layer errors

The connection layer itself (HTTP transport, the OAuth wire protocol, device keys) is
provided by the embedding application; this package never talks to the network directly.
"""
