"""Database models for saved connection profiles"""

from contextlib import contextmanager
from datetime import datetime
from typing import Generator

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from netmount.utils.logger import get_logger
from netmount.utils.masking import mask_string

LOG = get_logger(__name__)
Base = declarative_base()


class ConnectionProfile(Base):
    """Saved connection profile, keyed by its user-facing name"""
    __tablename__ = 'connection_profiles'

    name = Column(String(255), primary_key=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    type = Column(String(16), nullable=False)  # ftp, sftp, samba, webdav, s3
    data = Column(Text, nullable=False)  # JSON-encoded descriptor fields

    def __repr__(self):
        return f"<ConnectionProfile(name={self.name}, type={self.type})>"


class DatabaseManager:
    """Database connection and session management"""

    def __init__(self, db_url: str):
        self.db_url = db_url
        self.engine = None
        self.Session = None

    def initialize(self):
        """Initialize database connection"""
        LOG.info(f"Initializing connection store: {mask_string(self.db_url)}")
        self.engine = create_engine(self.db_url, echo=False)

        # Create tables if they don't exist
        Base.metadata.create_all(self.engine)

        self.Session = scoped_session(sessionmaker(bind=self.engine))
        LOG.debug("Connection store initialized")

    def get_session(self) -> Session:
        """Get database session"""
        if not self.Session:
            self.initialize()
        return self.Session()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide transactional scope for database operations"""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        """Close database connections"""
        if self.Session:
            self.Session.remove()
        if self.engine:
            self.engine.dispose()
