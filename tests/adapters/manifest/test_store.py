from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING

import pytest

from bootkeep.adapters.manifest import MANIFEST_SCHEMA, JsonManifestStore
from bootkeep.domain.errors import ManifestCorruptError
from bootkeep.domain.model import Item, ItemSet
from tests.helpers.subsystems import items_of

if TYPE_CHECKING:
    from pathlib import Path


def test_missing_manifest_declares_nothing(tmp_path: Path) -> None:
    store = JsonManifestStore(tmp_path / "manifests")

    assert store.load("flatpak") == ItemSet()


def test_saved_document_is_readable_json(tmp_path: Path) -> None:
    store = JsonManifestStore(tmp_path)
    store.save(
        "flatpak",
        ItemSet([Item("org.gnome.Maps", "flathub/stable", {"remote": "flathub"}), Item("x")]),
    )

    document = json.loads(store.path_for("flatpak").read_text(encoding="utf-8"))

    assert document == {
        "$schema": MANIFEST_SCHEMA,
        "subsystem": "flatpak",
        "items": [
            {"id": "org.gnome.Maps", "version": "flathub/stable", "source": {"remote": "flathub"}},
            {"id": "x", "version": None, "source": {}},
        ],
    }
    loaded = store.load("flatpak")
    assert list(loaded) == ["org.gnome.Maps", "x"]
    assert loaded["org.gnome.Maps"].source == {"remote": "flathub"}


def test_hand_written_manifest_may_omit_optional_fields(tmp_path: Path) -> None:
    store = JsonManifestStore(tmp_path)
    store.path_for("homebrew").write_text(
        '{"subsystem": "homebrew", "items": [{"id": "fd"}, {"id": "bat", "extra": 1}]}',
        encoding="utf-8",
    )

    assert store.load("homebrew") == items_of({"fd": None, "bat": None})


@pytest.mark.parametrize(
    ("payload", "detail"),
    [
        ("{not json", "document"),
        ('{"subsystem": "homebrew", "items": [{"id": ""}]}', "items.0.id"),
        ('{"subsystem": "dconf", "items": []}', "declares subsystem 'dconf'"),
        ('{"subsystem": "homebrew", "items": [{"id": "fd"}, {"id": "fd"}]}', "more than once"),
    ],
)
def test_corrupt_manifest_is_reported(tmp_path: Path, payload: str, detail: str) -> None:
    store = JsonManifestStore(tmp_path)
    store.path_for("homebrew").write_text(payload, encoding="utf-8")

    with pytest.raises(ManifestCorruptError) as excinfo:
        store.load("homebrew")

    assert excinfo.value.subsystem_id == "homebrew"
    assert detail in str(excinfo.value)


def test_failed_save_keeps_the_previous_manifest(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = JsonManifestStore(tmp_path)
    store.save("homebrew", items_of({"fd": None}))

    def failing_fsync(_fd: int) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "fsync", failing_fsync)

    with pytest.raises(OSError, match="disk full"):
        store.save("homebrew", items_of({"bat": None}))

    assert store.load("homebrew") == items_of({"fd": None})
    assert sorted(path.name for path in tmp_path.iterdir()) == ["homebrew.json"]


def _layered_store(tmp_path: Path) -> JsonManifestStore:
    system = JsonManifestStore(tmp_path / "system")
    system.save(
        "flatpak",
        ItemSet(
            [
                Item("org.gnome.Calculator", "flathub/stable", {"remote": "flathub"}),
                Item("org.gnome.Maps", "flathub/stable"),
            ]
        ),
    )
    return JsonManifestStore(tmp_path / "user", system_directory=tmp_path / "system")


def test_system_manifest_alone_is_the_declaration(tmp_path: Path) -> None:
    store = _layered_store(tmp_path)

    loaded = store.load("flatpak")

    assert list(loaded) == ["org.gnome.Calculator", "org.gnome.Maps"]
    assert loaded["org.gnome.Calculator"].source == {"remote": "flathub"}
    assert store.load("homebrew") == ItemSet()


def test_user_entries_override_system_entries_by_id(tmp_path: Path) -> None:
    store = _layered_store(tmp_path)
    JsonManifestStore(tmp_path / "user").save(
        "flatpak", items_of({"org.gnome.Maps": "flathub/beta", "org.gnome.Boxes": None})
    )

    assert store.load("flatpak") == items_of(
        {
            "org.gnome.Calculator": "flathub/stable",
            "org.gnome.Maps": "flathub/beta",
            "org.gnome.Boxes": None,
        }
    )


def test_save_writes_only_the_user_layer(tmp_path: Path) -> None:
    store = _layered_store(tmp_path)
    system_document = (tmp_path / "system" / "flatpak.json").read_bytes()

    store.save("flatpak", store.load("flatpak").with_item(Item("org.gnome.Boxes")))

    assert (tmp_path / "system" / "flatpak.json").read_bytes() == system_document
    assert JsonManifestStore(tmp_path / "user").load("flatpak") == items_of(
        {"org.gnome.Boxes": None}
    )
    assert list(store.load("flatpak")) == [
        "org.gnome.Calculator",
        "org.gnome.Maps",
        "org.gnome.Boxes",
    ]


def test_save_keeps_a_changed_system_entry_as_a_user_override(tmp_path: Path) -> None:
    store = _layered_store(tmp_path)

    store.save(
        "flatpak",
        ItemSet(
            [
                Item("org.gnome.Calculator", "flathub/stable", {"remote": "fedora"}),
                Item("org.gnome.Maps", "flathub/stable"),
            ]
        ),
    )

    user = JsonManifestStore(tmp_path / "user").load("flatpak")
    assert list(user) == ["org.gnome.Calculator"]
    assert user["org.gnome.Calculator"].source == {"remote": "fedora"}


def test_corrupt_system_manifest_is_reported(tmp_path: Path) -> None:
    (tmp_path / "system").mkdir()
    (tmp_path / "system" / "dconf.json").write_text("{not json", encoding="utf-8")
    store = JsonManifestStore(tmp_path / "user", system_directory=tmp_path / "system")

    with pytest.raises(ManifestCorruptError) as excinfo:
        store.load("dconf")

    assert excinfo.value.subsystem_id == "dconf"
