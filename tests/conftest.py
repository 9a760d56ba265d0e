"""Shared fakes for the database and storage collaborators."""
from typing import Dict, List

import pytest

from portal_backup.core.exceptions import DatabaseError, StorageUnavailableError
from portal_backup.domain.interfaces import DatabaseInterface, StorageInterface, StorageProviderInterface

class FakeDatabase(DatabaseInterface):
    """Records calls; statements listed in ``fail_times`` fail that many times."""

    def __init__(self, fail_times: Dict[str, int] = None, fail_commit: bool = False):
        self.fail_times = dict(fail_times or {})
        self.fail_commit = fail_commit
        self.calls: List[str] = []
        self.executed: List[str] = []

    def begin_transaction(self):
        self.calls.append("BEGIN")

    def execute(self, sql):
        self.calls.append(sql)
        remaining = self.fail_times.get(sql, 0)
        if remaining:
            self.fail_times[sql] = remaining - 1
            raise DatabaseError(f"Error executing SQL: {sql[:20]}")
        self.executed.append(sql)

    def commit(self):
        if self.fail_commit:
            raise DatabaseError("Failed to commit transaction: lost connection")
        self.calls.append("COMMIT")

    def rollback(self):
        self.calls.append("ROLLBACK")

class FakeStorage(StorageInterface):
    """Listing results keyed by domain ('' for the module root)."""

    def __init__(self, listings: Dict[str, List[str]]):
        self.listings = listings

    def list_files_relative(self, domain, root_marker, pattern, recursive):
        return list(self.listings.get(domain, []))

    def open_read_stream(self, path):
        raise NotImplementedError

class FakeStorageProvider(StorageProviderInterface):
    """Modules map to (domains, listings); modules in ``unavailable`` fail to open."""

    def __init__(self, modules: Dict[str, tuple], unavailable=()):
        self.modules = modules
        self.unavailable = set(unavailable)

    def get_module_list(self):
        return list(self.modules)

    def get_domain_list(self, module):
        return list(self.modules[module][0])

    def get_storage(self, tenant_id, module):
        if module in self.unavailable:
            raise StorageUnavailableError(module, "disk offline")
        return FakeStorage(self.modules[module][1])

@pytest.fixture
def database():
    return FakeDatabase()

@pytest.fixture
def no_sleep():
    delays = []
    return delays.append, delays
