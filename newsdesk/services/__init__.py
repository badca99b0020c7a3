# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic for a single domain aggregate:
#
#   auth_service     signup, login and access-token verification
#   article_service  ownership-gated CRUD + the cached public feed
#
# Service functions accept an AsyncSession (or, for the feed, the session
# factory) as their first argument so that the router layer controls the
# transaction boundary via the ``get_db`` dependency.  Authenticated
# identity is passed in explicitly as a user id, never read from ambient
# request state.
