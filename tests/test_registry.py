"""
Tests for the manager registry: resolution, lookup and install batching.
"""

import pytest

from devbox.adapters.mock import MockManager
from devbox.adapters.registry import (
    UNSUPPORTED,
    ManagerRegistry,
    Unsupported,
    default_registry,
    mock_registry,
)
from devbox.core.errors import FatalEnvironmentError, PackageUnsupported
from devbox.core.models.facts import ManagerId, OsFamily
from devbox.core.models.package import PackageSpec

BREW, PACMAN, APT = ManagerId.BREW, ManagerId.PACMAN, ManagerId.APT


def _spec(name: str, required: bool = True, **names: str) -> PackageSpec:
    return PackageSpec(
        logical_name=name,
        per_manager_names={ManagerId(k): v for k, v in names.items()},
        required=required,
    )


# ── Resolution ───────────────────────────────────────────────────────


class TestResolve:
    def test_macos_prefers_brew(self, make_facts):
        registry = mock_registry()
        facts = make_facts(OsFamily.MACOS, managers=(BREW, APT))
        assert registry.resolve(facts) is BREW

    def test_linux_candidate_order(self, make_facts):
        registry = mock_registry()
        assert registry.resolve(make_facts(managers=(APT, PACMAN, BREW))) is PACMAN
        assert registry.resolve(make_facts(managers=(APT, BREW))) is APT
        assert registry.resolve(make_facts(managers=(BREW,))) is BREW

    def test_macos_without_brew_falls_back_to_candidates(self, make_facts):
        registry = mock_registry()
        assert registry.resolve(make_facts(OsFamily.MACOS, managers=(APT,))) is APT

    def test_no_manager_is_fatal(self, make_facts):
        registry = mock_registry()
        with pytest.raises(FatalEnvironmentError, match="No supported package manager"):
            registry.resolve(make_facts(managers=()))

    def test_unregistered_manager_is_not_picked(self, make_facts):
        registry = ManagerRegistry([MockManager(manager_id=APT)])
        with pytest.raises(FatalEnvironmentError):
            registry.resolve(make_facts(managers=(PACMAN,)))

    def test_manager_for(self, make_facts):
        registry = mock_registry()
        manager = registry.manager_for(make_facts(managers=(APT,)))
        assert manager.id is APT


# ── Lookup ───────────────────────────────────────────────────────────


class TestLookup:
    def test_lookup_known(self):
        spec = _spec("fd", apt="fd-find", brew="fd")
        assert ManagerRegistry.lookup(spec, APT) == "fd-find"

    def test_lookup_unsupported(self):
        spec = _spec("starship", brew="starship")
        result = ManagerRegistry.lookup(spec, APT)
        assert result is UNSUPPORTED
        assert not result
        assert repr(result) == "UNSUPPORTED"

    def test_sentinel_is_singleton(self):
        assert Unsupported() is UNSUPPORTED

    def test_require_raises(self):
        with pytest.raises(PackageUnsupported, match="starship"):
            mock_registry().require(_spec("starship", brew="starship"), APT)

    def test_is_installed(self):
        apt = MockManager(manager_id=APT, installed={"git"})
        registry = ManagerRegistry([apt])
        assert registry.is_installed(_spec("git", apt="git"), APT)
        assert not registry.is_installed(_spec("tmux", apt="tmux"), APT)
        assert not registry.is_installed(_spec("lazygit", brew="lazygit"), APT)


# ── Install orchestration ────────────────────────────────────────────


class TestInstallPackages:
    def test_single_batched_invocation(self):
        apt = MockManager(manager_id=APT)
        registry = ManagerRegistry([apt])
        specs = [_spec("git", apt="git"), _spec("fd", apt="fd-find"), _spec("jq", apt="jq")]

        receipts = registry.install_packages(specs, APT)

        assert apt.calls == [["git", "fd-find", "jq"]]
        assert apt.update_calls == 1
        assert all(r.ok for r in receipts)

    def test_unsupported_becomes_warning(self):
        apt = MockManager(manager_id=APT)
        registry = ManagerRegistry([apt])
        specs = [_spec("git", apt="git"), _spec("starship", brew="starship")]

        receipts = registry.install_packages(specs, APT, update=False)

        skipped = [r for r in receipts if r.skipped]
        assert len(skipped) == 1
        assert skipped[0].target == "starship"
        assert not skipped[0].required
        assert "not available via apt" in skipped[0].warnings[0]
        assert apt.calls == [["git"]]

    def test_all_unsupported_installs_nothing(self):
        apt = MockManager(manager_id=APT)
        registry = ManagerRegistry([apt])

        receipts = registry.install_packages([_spec("lazygit", brew="lazygit")], APT)

        assert apt.call_count == 0
        assert apt.update_calls == 0
        assert [r.status for r in receipts] == ["skipped"]

    def test_duplicate_names_collapsed(self):
        brew = MockManager(manager_id=BREW)
        registry = ManagerRegistry([brew])
        specs = [_spec("node", brew="node"), _spec("npm", brew="node"), _spec("git", brew="git")]

        registry.install_packages(specs, BREW, update=False)

        assert brew.calls == [["node", "git"]]

    def test_no_batch_support_installs_one_by_one(self):
        apt = MockManager(manager_id=APT, supports_batch=False)
        registry = ManagerRegistry([apt])
        specs = [_spec("git", apt="git"), _spec("jq", apt="jq")]

        receipts = registry.install_packages(specs, APT, update=False)

        assert apt.calls == [["git"], ["jq"]]
        assert [r.target for r in receipts] == ["git", "jq"]

    def test_failed_batch_retries_individually(self):
        apt = MockManager(manager_id=APT, fail={"broken"})
        registry = ManagerRegistry([apt])
        specs = [_spec("git", apt="git"), _spec("broken", apt="broken"), _spec("jq", apt="jq")]

        receipts = registry.install_packages(specs, APT, update=False)

        assert apt.calls == [["git", "broken", "jq"], ["git"], ["broken"], ["jq"]]
        batch = receipts[0]
        assert batch.failed and not batch.required
        assert batch.warnings
        by_target = {r.target: r for r in receipts[1:]}
        assert by_target["git"].ok
        assert by_target["jq"].ok
        assert by_target["broken"].blocking

    def test_optional_failure_not_blocking(self):
        apt = MockManager(manager_id=APT, fail={"htop"})
        registry = ManagerRegistry([apt])

        receipts = registry.install_packages([_spec("htop", required=False, apt="htop")], APT, update=False)

        assert receipts[0].failed
        assert not receipts[0].blocking
        assert "Optional package" in receipts[0].warnings[0]

    def test_update_can_be_disabled(self):
        apt = MockManager(manager_id=APT)
        ManagerRegistry([apt]).install_packages([_spec("git", apt="git")], APT, update=False)
        assert apt.update_calls == 0

    def test_unregistered_manager_is_fatal(self):
        with pytest.raises(FatalEnvironmentError):
            ManagerRegistry().install_packages([_spec("git", apt="git")], APT)


class TestRegistryConstruction:
    def test_default_registry_has_every_manager(self):
        registry = default_registry()
        assert set(registry.list_managers()) == {BREW, PACMAN, APT}

    def test_mock_registry(self):
        registry = mock_registry()
        assert all(isinstance(registry.get(m), MockManager) for m in ManagerId)

    def test_register_replaces(self):
        registry = ManagerRegistry([MockManager(manager_id=APT)])
        replacement = MockManager(manager_id=APT)
        registry.register(replacement)
        assert registry.get(APT) is replacement
