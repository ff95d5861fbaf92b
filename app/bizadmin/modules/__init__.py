"""
Record modules live under this package.

Each module owns its models, its service functions, its `/api` routes and the screen
configurations the admin panel renders with the dynamic engines.
"""
