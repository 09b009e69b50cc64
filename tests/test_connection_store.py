"""
Unit tests for saved connection profiles
"""

import os
import shutil
import tempfile
import unittest

from netmount.models.database import DatabaseManager
from netmount.models.schemas import ConnectionDescriptor
from netmount.services.connection_store import ConnectionStore
from netmount.utils.exceptions import ValidationException


class TestConnectionStore(unittest.TestCase):
    """Test cases for ConnectionStore"""

    def setUp(self):
        self.root = tempfile.mkdtemp()
        self.db = DatabaseManager(f"sqlite:///{os.path.join(self.root, 'connections.db')}")
        self.store = ConnectionStore(self.db)

    def tearDown(self):
        self.db.close()
        shutil.rmtree(self.root, ignore_errors=True)

    def test_save_and_get(self):
        descriptor = ConnectionDescriptor(type='s3', name='archive', bucket='backups', region='eu-west-1',
                                          access_key_id='AKIA', secret_access_key='secret')
        self.store.save(descriptor)

        self.assertEqual(self.store.get('archive'), descriptor)
        self.assertIsNone(self.store.get('missing'))

    def test_save_replaces_existing(self):
        self.store.save(ConnectionDescriptor(type='ftp', name='mirror', host='old.example.com'))
        self.store.save(ConnectionDescriptor(type='sftp', name='mirror', host='new.example.com', username='u'))

        saved = self.store.get('mirror')
        self.assertEqual(saved.type, 'sftp')
        self.assertEqual(saved.host, 'new.example.com')
        self.assertEqual(len(self.store.list()), 1)

    def test_list_sorted_by_name(self):
        for name in ('zeta', 'alpha', 'mid'):
            self.store.save(ConnectionDescriptor(type='ftp', name=name, host=f'{name}.example.com'))
        self.assertEqual([d.name for d in self.store.list()], ['alpha', 'mid', 'zeta'])

    def test_remove(self):
        self.store.save(ConnectionDescriptor(type='ftp', name='mirror', host='h'))
        self.assertTrue(self.store.remove('mirror'))
        self.assertFalse(self.store.remove('mirror'))
        self.assertEqual(self.store.list(), [])

    def test_name_required(self):
        with self.assertRaises(ValidationException):
            self.store.save(ConnectionDescriptor(type='ftp', host='h'))


if __name__ == '__main__':
    unittest.main()
