"""Shared plumbing for tenant-scoped repositories."""
import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from orderdesk.exceptions import SaasError, PersistenceFailure, ConcurrentModification

logger = logging.getLogger(__name__)


class BaseRepository:
    """Binds a SQLAlchemy session to one tenant."""
    
    def __init__(self, session: Session, tenant_id: int):
        if not tenant_id:
            raise ValueError('tenant_id is required')
        self.session = session
        self.tenant_id = tenant_id
    
    def flush(self):
        self.session.flush()
    
    @contextmanager
    def transaction(self, order_id=None):
        """
        Run a unit of work: commit on success, rollback on any failure.
        
        Application errors propagate unchanged; a stale order version becomes
        ConcurrentModification and any other database fault PersistenceFailure.
        """
        try:
            yield self.session
            self.session.commit()
        except SaasError:
            self.session.rollback()
            raise
        except StaleDataError as e:
            self.session.rollback()
            logger.warning(f"Stale write detected on order {order_id}: {e}")
            raise ConcurrentModification(order_id) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception(f"Database error (tenant={self.tenant_id}): {e}")
            raise PersistenceFailure(original=e) from e
        except Exception:
            self.session.rollback()
            raise
