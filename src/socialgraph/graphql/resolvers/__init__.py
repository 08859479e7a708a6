"""Resolver package for the GraphQL schema.

Object field resolvers read related data through the request's batch loaders
(``get_loaders(info)``); root list queries and mutations talk to the
repository directly.
"""

# Intentionally empty; functions are defined in sibling modules.
