# Repositories package.
#
# Typed accessors over the relational store, one module per entity:
#
#   user_repository     create / lookup for User
#   article_repository  CRUD, soft delete and the public-feed search for Article
#
# Functions take an AsyncSession as their first argument and flush but
# never commit; the transaction boundary belongs to the ``get_db``
# dependency (or to whoever opened the session).
