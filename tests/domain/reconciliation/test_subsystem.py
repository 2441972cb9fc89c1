from __future__ import annotations

import pytest

from bootkeep.domain.errors import (
    AdapterUnavailableError,
    NotReconciledError,
    UnsupportedForTierError,
)
from bootkeep.domain.model import Item, ItemSet, SubsystemTier
from bootkeep.domain.reconciliation import (
    BaselineSource,
    Classification,
    DiffMode,
    Subsystem,
    SubsystemSnapshot,
    SyncActionKind,
)
from tests.helpers.subsystems import (
    FakeAdapter,
    FakeImageAdapter,
    atomic,
    convergent,
    items_of,
)

EMPTY = SubsystemSnapshot(manifest=ItemSet(), baseline=ItemSet())


def test_atomic_subsystem_needs_a_staged_reader() -> None:
    with pytest.raises(ValueError, match="staged state reader"):
        Subsystem(id="system", name="Base", tier=SubsystemTier.ATOMIC, adapter=FakeAdapter())


def test_convergent_subsystem_cannot_read_a_staged_layer() -> None:
    adapter = FakeImageAdapter()

    with pytest.raises(ValueError, match="cannot read a staged layer"):
        Subsystem(
            id="flatpak",
            name="Flatpak",
            tier=SubsystemTier.CONVERGENT,
            adapter=adapter,
            staged_reader=adapter,
        )


def test_duplicate_ids_from_an_adapter_are_an_adapter_failure() -> None:
    class _Stuttering(FakeAdapter):
        def list(self) -> list[Item]:
            return [Item("a", "1"), Item("a", "2")]

    with pytest.raises(AdapterUnavailableError, match="reported item 'a' twice"):
        convergent("homebrew", _Stuttering()).observe()


def test_atomic_staged_diffs_the_pending_layer() -> None:
    adapter = FakeImageAdapter(
        [Item("htop"), Item("zsh")], staged=[Item("zsh"), Item("tmux")]
    )

    report = atomic("system", adapter).staged(EMPTY)

    assert report.mode is DiffMode.STAGED_LAYER
    assert report.ids(Classification.ADDED) == {"tmux"}
    assert report.ids(Classification.REMOVED) == {"htop"}


def test_convergent_staged_is_a_three_way_diff() -> None:
    subsystem = convergent("flatpak", FakeAdapter([Item("org.gnome.Maps", "flathub/stable")]))
    snapshot = SubsystemSnapshot(
        manifest=items_of({"org.gnome.Maps": "flathub/stable", "org.gimp.GIMP": "flathub/stable"}),
        baseline=ItemSet(),
    )

    report = subsystem.staged(snapshot)

    assert report.mode is DiffMode.THREE_WAY
    assert report.ids(Classification.ADDED) == {"org.gimp.GIMP"}


def test_drift_is_not_available_to_atomic_subsystems() -> None:
    with pytest.raises(UnsupportedForTierError):
        atomic("system").drift(EMPTY)


def test_capture_records_observed_state_as_manifest_and_baseline() -> None:
    subsystem = convergent("homebrew", FakeAdapter([Item("ripgrep"), Item("fd")]))
    snapshot = SubsystemSnapshot(
        manifest=items_of({"ripgrep": None, "bat": None}), baseline=ItemSet()
    )

    report, commit = subsystem.capture(snapshot)

    assert list(report.items) == ["ripgrep", "fd"]
    assert report.changes.ids(Classification.ADDED) == {"fd"}
    assert report.changes.ids(Classification.REMOVED) == {"bat"}
    assert commit.manifest == commit.baseline == report.items


def test_baseline_refuses_when_manifest_disagrees() -> None:
    subsystem = convergent("dconf", FakeAdapter([Item("/org/gnome/a", "1")]))
    snapshot = SubsystemSnapshot(manifest=items_of({"/org/gnome/a": "2"}), baseline=ItemSet())

    with pytest.raises(NotReconciledError) as excinfo:
        subsystem.baseline(snapshot)

    assert excinfo.value.differing == ("/org/gnome/a",)


def test_forced_baseline_records_observed_state() -> None:
    subsystem = convergent("dconf", FakeAdapter([Item("/org/gnome/a", "1")]))
    snapshot = SubsystemSnapshot(manifest=items_of({"/org/gnome/a": "2"}), baseline=ItemSet())

    report, commit = subsystem.baseline(snapshot, force=True)

    assert report.forced is True
    assert report.source is BaselineSource.OBSERVED
    assert commit.baseline == items_of({"/org/gnome/a": "1"})


def test_atomic_baseline_prefers_the_pending_layer() -> None:
    adapter = FakeImageAdapter([Item("htop")], staged=[Item("htop"), Item("tmux")])
    snapshot = SubsystemSnapshot(
        manifest=items_of({"htop": None, "tmux": None}), baseline=ItemSet()
    )

    report, commit = atomic("system", adapter).baseline(snapshot)

    assert report.source is BaselineSource.STAGED
    assert commit.baseline is not None
    assert list(commit.baseline) == ["htop", "tmux"]


def test_atomic_baseline_falls_back_to_booted_state() -> None:
    adapter = FakeImageAdapter([Item("htop")])
    snapshot = SubsystemSnapshot(manifest=items_of({"htop": None}), baseline=ItemSet())

    report, _commit = atomic("system", adapter).baseline(snapshot)

    assert report.source is BaselineSource.BOOTED


def test_sync_reinstalls_by_removing_first() -> None:
    adapter = FakeAdapter([Item("app", "v1")])
    snapshot = SubsystemSnapshot(manifest=items_of({"app": "v2"}), baseline=items_of({"app": "v1"}))

    report, commit = convergent("flatpak", adapter).sync(snapshot)

    assert adapter.calls == [("remove", "app"), ("install", "app")]
    assert [a.kind for a in report.applied] == [SyncActionKind.REINSTALL]
    assert commit.baseline_upserts == (Item("app", "v2"),)


def test_sync_keeps_going_after_a_failed_action() -> None:
    adapter = FakeAdapter([Item("old")])
    adapter.failing["broken"] = AdapterUnavailableError("no such package")
    snapshot = SubsystemSnapshot(
        manifest=items_of({"broken": None, "fine": None}),
        baseline=items_of({"old": None}),
    )

    report, commit = convergent("homebrew", adapter).sync(snapshot)

    assert [a.item_id for a, _error in report.failed] == ["broken"]
    assert [a.item_id for a in report.applied] == ["fine", "old"]
    assert commit.baseline_upserts == (Item("fine"),)
    assert commit.baseline_discards == ("old",)


def test_half_applied_reinstall_forgets_the_old_version() -> None:
    adapter = FakeAdapter([Item("app", "v1")])
    adapter.failing_once["app"] = AdapterUnavailableError("download interrupted")
    subsystem = convergent("flatpak", adapter)
    snapshot = SubsystemSnapshot(manifest=items_of({"app": "v2"}), baseline=items_of({"app": "v1"}))

    report, commit = subsystem.sync(snapshot)

    assert [a.item_id for a, _error in report.failed] == ["app"]
    assert "app" not in adapter.items
    assert commit.baseline_upserts == ()
    assert commit.baseline_discards == ("app",)

    retry = SubsystemSnapshot(manifest=snapshot.manifest, baseline=ItemSet())
    report, commit = subsystem.sync(retry)

    assert [(a.kind, a.reason) for a in report.applied] == [
        (SyncActionKind.INSTALL, Classification.ADDED)
    ]
    assert adapter.items["app"] == Item("app", "v2")
    assert commit.baseline_upserts == (Item("app", "v2"),)


def test_dry_run_sync_touches_nothing() -> None:
    adapter = FakeAdapter()
    snapshot = SubsystemSnapshot(manifest=items_of({"fd": None}), baseline=ItemSet())

    report, commit = convergent("homebrew", adapter).sync(snapshot, dry_run=True)

    assert [a.item_id for a in report.plan.actions] == ["fd"]
    assert adapter.calls == []
    assert commit.is_empty


def test_atomic_add_only_updates_the_manifest() -> None:
    adapter = FakeImageAdapter()

    report, commit = atomic("system", adapter).add(EMPTY, Item("tmux"))

    assert report.deferred is True
    assert adapter.calls == []
    assert commit.manifest == items_of({"tmux": None})
    assert commit.baseline_upserts == ()


def test_convergent_add_installs_and_records_the_item() -> None:
    adapter = FakeAdapter()
    item = Item("org.gnome.Maps", "flathub/stable")

    report, commit = convergent("flatpak", adapter).add(EMPTY, item)

    assert report.deferred is False
    assert adapter.calls == [("install", "org.gnome.Maps")]
    assert commit.baseline_upserts == (item,)


def test_deferred_remove_keeps_the_ecosystem_untouched() -> None:
    adapter = FakeAdapter([Item("fd")])
    snapshot = SubsystemSnapshot(manifest=items_of({"fd": None, "bat": None}), baseline=ItemSet())

    report, commit = convergent("homebrew", adapter).remove(snapshot, "fd", defer=True)

    assert report.deferred is True
    assert adapter.calls == []
    assert commit.manifest == items_of({"bat": None})
