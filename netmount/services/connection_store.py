"""Saved connection profiles"""

import json
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from netmount.models.database import ConnectionProfile, DatabaseManager
from netmount.models.schemas import ConnectionDescriptor
from netmount.utils.exceptions import DatabaseException, ValidationException
from netmount.utils.logger import get_logger

LOG = get_logger(__name__)


class ConnectionStore:
    """Key-value store of connection descriptors, keyed by name"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def get(self, name: str) -> Optional[ConnectionDescriptor]:
        try:
            with self.db.session_scope() as session:
                profile = session.query(ConnectionProfile).filter_by(name=name).first()
                if not profile:
                    return None
                return self._to_descriptor(profile)
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to load connection {name}: {e}")

    def list(self) -> List[ConnectionDescriptor]:
        try:
            with self.db.session_scope() as session:
                profiles = session.query(ConnectionProfile).order_by(ConnectionProfile.name).all()
                return [self._to_descriptor(p) for p in profiles]
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to list connections: {e}")

    def save(self, descriptor: ConnectionDescriptor) -> ConnectionDescriptor:
        """Insert or replace the profile named ``descriptor.name``"""
        if not descriptor.name:
            raise ValidationException('A saved connection needs a name')

        data = json.dumps(descriptor.to_dict())
        try:
            with self.db.session_scope() as session:
                profile = session.query(ConnectionProfile).filter_by(name=descriptor.name).first()
                if profile:
                    profile.type = descriptor.type
                    profile.data = data
                    profile.updated_at = datetime.utcnow()
                    LOG.info(f"Updated saved connection {descriptor.name}")
                else:
                    session.add(ConnectionProfile(name=descriptor.name, type=descriptor.type, data=data))
                    LOG.info(f"Saved connection {descriptor.name}")
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to save connection {descriptor.name}: {e}")
        return descriptor

    def remove(self, name: str) -> bool:
        try:
            with self.db.session_scope() as session:
                deleted = session.query(ConnectionProfile).filter_by(name=name).delete()
        except SQLAlchemyError as e:
            raise DatabaseException(f"Failed to remove connection {name}: {e}")
        if deleted:
            LOG.info(f"Removed saved connection {name}")
        return bool(deleted)

    @staticmethod
    def _to_descriptor(profile: ConnectionProfile) -> ConnectionDescriptor:
        data = json.loads(profile.data)
        data['name'] = profile.name
        return ConnectionDescriptor.from_dict(data)
