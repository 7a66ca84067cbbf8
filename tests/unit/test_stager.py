import os
from pathlib import Path

import pytest

from cni_install.outcomes import SkippedWritable, Success
from cni_install.stager import BinaryStager


def build_source(tmp_path: Path) -> Path:
    source = tmp_path / "opt-cni-bin"
    source.mkdir()
    for name in ("calico", "calico-ipam"):
        binary = source / name
        binary.write_bytes(f"#!/bin/sh\necho {name}\n".encode())
        binary.chmod(0o755)
    (source / "subdir").mkdir()
    return source


def test_stage_copies_binaries(tmp_path: Path):
    source = build_source(tmp_path)
    target = tmp_path / "host-bin"
    target.mkdir()

    outcome = BinaryStager().stage(source, target)

    assert isinstance(outcome, Success)
    assert list(outcome.items) == ["calico", "calico-ipam"]
    assert sorted(p.name for p in target.iterdir()) == ["calico", "calico-ipam"]
    assert (target / "calico").read_bytes() == (source / "calico").read_bytes()
    assert os.stat(target / "calico").st_mode & 0o777 == 0o755


def test_stage_overwrites_existing(tmp_path: Path):
    source = build_source(tmp_path)
    target = tmp_path / "host-bin"
    target.mkdir()
    (target / "calico").write_text("old")

    BinaryStager().stage(source, target)

    assert (target / "calico").read_bytes() == (source / "calico").read_bytes()


def test_stage_missing_target_is_skipped(tmp_path: Path):
    source = build_source(tmp_path)
    target = tmp_path / "missing"

    outcome = BinaryStager().stage(source, target)

    assert isinstance(outcome, SkippedWritable)
    assert outcome.reason == f"{target} is non-writeable, skipping"
    assert not target.exists()


def test_stage_read_only_target_is_skipped(tmp_path: Path, monkeypatch):
    source = build_source(tmp_path)
    target = tmp_path / "host-bin"
    target.mkdir()
    monkeypatch.setattr("cni_install.stager.os.access", lambda path, mode: False)

    outcome = BinaryStager().stage(source, target)

    assert isinstance(outcome, SkippedWritable)
    assert outcome.reason == f"{target} is non-writeable, skipping"
    assert list(target.iterdir()) == []


def test_stage_honours_skip_list(tmp_path: Path):
    source = build_source(tmp_path)
    target = tmp_path / "host-bin"
    target.mkdir()

    outcome = BinaryStager(skip={"calico-ipam"}).stage(source, target)

    assert list(outcome.items) == ["calico"]
    assert not (target / "calico-ipam").exists()


def test_stage_keeps_existing_without_update(tmp_path: Path):
    source = build_source(tmp_path)
    target = tmp_path / "host-bin"
    target.mkdir()
    (target / "calico").write_text("pinned")

    outcome = BinaryStager(update_existing=False).stage(source, target)

    assert list(outcome.items) == ["calico-ipam"]
    assert (target / "calico").read_text() == "pinned"


def test_stage_removes_temp_file_on_failure(tmp_path: Path, monkeypatch):
    source = build_source(tmp_path)
    target = tmp_path / "host-bin"
    target.mkdir()

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("cni_install.stager.os.replace", broken_replace)

    with pytest.raises(OSError, match="disk full"):
        BinaryStager().stage(source, target)
    assert list(target.iterdir()) == []


def test_stage_missing_source_raises(tmp_path: Path):
    target = tmp_path / "host-bin"
    target.mkdir()
    with pytest.raises(FileNotFoundError):
        BinaryStager().stage(tmp_path / "nope", target)
