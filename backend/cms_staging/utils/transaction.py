from contextlib import contextmanager
from cms_staging.extensions import db

@contextmanager
def transactional():
    """
    One unit of work on db.session.

    Commits when the block exits normally; on any exception rolls back
    everything flushed inside the block (revisions, associations,
    tombstones, row moves, audit rows) and re-raises.
    """
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
