# Services package.
#
#   notice_service        — CRUD + pagination + search + cache for Notice
#   file_storage_service  — attachment bytes on disk and their metadata rows
#
# Service callables take an AsyncSession as their first data argument so
# the router layer controls the transaction boundary via ``get_db``, and
# are marked ``@transactional`` so the routing session knows whether to
# talk to the master or the replica.
