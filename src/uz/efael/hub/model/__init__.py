"""
Session Models

This package holds the in-memory state of the hub.

Key Models:
- session.py: `Session` records and the lock-guarded `SessionRegistry`

Sessions are never persisted. They are created by the create-connection and
request-OIDC-url flows, advanced by the finish-OIDC-login flow, and disappear when the
process ends.
"""
