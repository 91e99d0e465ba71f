"""
Efael Hub - Matrix OIDC login sessions

This package drives the OpenID-Connect login handshake that authorizes a client device
against a Matrix homeserver. It sits between a presentation layer, which talks to it through
asynchronous message channels, and a homeserver connection layer, which it only reaches
through the `HomeserverConnection` protocol.

Key Components:
- app: Flow tasks, hub bootstrap, configuration, logging and metrics
- matrix: Connection-layer protocol, capability discovery, OIDC client metadata and errors
- model: In-memory session registry shared by the flow tasks
- messages: Request and response messages exchanged with the presentation layer

Login Flow:
1. Create connection: resolve the homeserver, discover its login capabilities and register
   a session
2. Request OIDC URL: build client registration metadata and ask the homeserver for an
   authorization URL, always soliciting consent
3. Finish OIDC login: hand the callback URL back to the connection layer and return the
   device id, user id and token pair

Sessions only live in memory for the duration of the login flow.
"""
