"""Authentication module (JWT bearer tokens).

One credential format is accepted on both transports: the REST surface reads
it from the ``Authorization: Bearer`` header, the WebSocket handshake from the
``token`` query parameter or the same header.

Services:
    - TokenService: issues and verifies HS256 tokens.
    - get_current_user: FastAPI dependency for REST routes.
"""
