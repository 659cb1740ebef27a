"""Tests for the capture artifact store."""

import os
import re
import time

import pytest

from huely.errors import NormalizationError
from huely.store import FileArtifactStore, new_session_id


def _touch(path, age_seconds=0.0, data=b"x"):
    with open(path, "wb") as f:
        f.write(data)
    if age_seconds:
        stamp = time.time() - age_seconds
        os.utime(path, (stamp, stamp))
    return path


def test_session_ids_are_timestamp_plus_random_suffix():
    ids = {new_session_id() for _ in range(50)}
    assert len(ids) == 50
    for session_id in ids:
        assert re.fullmatch(r"\d{13}_[a-z0-9]{6}", session_id)


def test_put_reserves_namespaced_paths(capture_dir):
    store = FileArtifactStore(capture_dir)
    handle = store.put("123_abcdef", raw_extension=".jpg")

    assert handle.raw_path == os.path.join(capture_dir, "capture_temp_123_abcdef.jpg")
    assert handle.final_path == os.path.join(capture_dir, "capture_123_abcdef.jpeg")


def test_store_creates_missing_directory(tmp_path):
    directory = tmp_path / "nested" / "captures"
    FileArtifactStore(str(directory))
    assert directory.is_dir()


def test_resolve_reads_final_artifact(capture_dir):
    store = FileArtifactStore(capture_dir)
    handle = store.put("123_abcdef")
    _touch(handle.final_path, data=b"\xff\xd8payload")

    assert store.resolve(handle) == b"\xff\xd8payload"


def test_resolve_missing_artifact_raises(capture_dir):
    store = FileArtifactStore(capture_dir)
    with pytest.raises(NormalizationError):
        store.resolve(store.put("123_abcdef"))


def test_sweep_removes_only_old_artifacts(capture_dir):
    store = FileArtifactStore(capture_dir)
    old = _touch(os.path.join(capture_dir, "capture_1_old.jpeg"), age_seconds=120)
    old_temp = _touch(os.path.join(capture_dir, "capture_temp_1_old"), age_seconds=120)
    young = _touch(os.path.join(capture_dir, "capture_2_young.jpeg"), age_seconds=5)
    unrelated = _touch(os.path.join(capture_dir, "notes.txt"), age_seconds=120)

    removed = store.sweep(older_than=30)

    assert removed == 2
    assert not os.path.exists(old)
    assert not os.path.exists(old_temp)
    assert os.path.exists(young)
    assert os.path.exists(unrelated)


def test_sweep_respects_reference_time(capture_dir):
    store = FileArtifactStore(capture_dir)
    path = _touch(os.path.join(capture_dir, "capture_1_a.jpeg"))

    assert store.sweep(older_than=30, now=time.time() + 10) == 0
    assert store.sweep(older_than=30, now=time.time() + 60) == 1
    assert not os.path.exists(path)


def test_discard_removes_every_file_of_a_session(capture_dir):
    store = FileArtifactStore(capture_dir)
    mine = [
        _touch(os.path.join(capture_dir, "capture_temp_111_aaaaaa.bmp")),
        _touch(os.path.join(capture_dir, "capture_111_aaaaaa.jpeg")),
    ]
    other = _touch(os.path.join(capture_dir, "capture_222_bbbbbb.jpeg"))

    assert store.discard("111_aaaaaa") == 2
    assert not any(os.path.exists(path) for path in mine)
    assert os.path.exists(other)
    assert store.session_files("111_aaaaaa") == []
