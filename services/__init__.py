"""Recipe family core: tag and ingredient resolution, field synchronization,
sharing/forking, and the proposal and tag-suggestion lifecycles.

Every operation takes the SQLAlchemy session as its first argument; mutations
run inside `services.transaction.atomic`, so a failure anywhere in a cascade
leaves the database untouched and no event is emitted.
"""
