"""Tests for domain models and the module registry."""
import pytest

from portal_backup.core.exceptions import IllegalStateError, InvalidArgumentError
from portal_backup.domain.models import BackupFileInfo, ReplayResult, TenantContext
from portal_backup.infrastructure.modules import ModuleRegistry, is_storage_module_allowed

class TestTenantContext:
    """Tenant settings."""

    @pytest.mark.parametrize("tenant_id", [0, -1, "1", True])
    def test_tenant_id_must_be_positive_int(self, tenant_id):
        with pytest.raises(InvalidArgumentError):
            TenantContext(tenant_id)

    def test_ignore_is_idempotent(self):
        context = TenantContext(1)
        context.ignore_module("files")
        context.ignore_module("files")

        assert context.ignored_modules == {"files"}

    def test_frozen_after_start(self):
        context = TenantContext(1, ignored_tables={"audit"})
        context.start()

        with pytest.raises(IllegalStateError):
            context.ignore_table("users")
        assert context.ignored_tables == {"audit"}

class TestModels:
    """Value objects."""

    def test_file_info_identity(self):
        assert BackupFileInfo("", "files", "a", 1) == BackupFileInfo("", "files", "a", 1)
        assert len({BackupFileInfo("", "files", "a", 1), BackupFileInfo("d", "files", "a", 1)}) == 2

    def test_replay_status(self):
        assert ReplayResult().status == "success"
        assert ReplayResult(statements_executed=3, statements_failed=1).status == "warning"
        assert ReplayResult(statements_failed=2).status == "error"

class TestModuleRegistry:
    """Storage to logical module mapping."""

    def test_lookup_by_storage_module(self):
        registry = ModuleRegistry()

        assert registry.get_by_storage_module("forum").name == "community"
        assert registry.get_by_storage_module("mailaggregator").name == "mail"
        assert registry.get_by_storage_module("unknown") is None

    def test_allow_list(self):
        assert is_storage_module_allowed("userPhotos")
        assert not is_storage_module_allowed("backup")
