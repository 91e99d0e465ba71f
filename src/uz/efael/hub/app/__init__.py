"""
Hub Application Layer

This package runs the login flows as long-lived asyncio tasks and wires them to the
presentation layer's message channels.

Key Components:
- hub.py: Channel setup and task lifecycle (`LoginHub`, `start_hub`)
- tasks.py: The three flows (create connection, request OIDC url, finish OIDC login)
- config.py: Configuration management using Pydantic settings
- metrics.py: Vendor-agnostic metrics client
- log.py: Logging bootstrap

Each flow owns one inbound and one outbound queue. Responses are FIFO per flow, with
no ordering guarantee across flows.
"""
