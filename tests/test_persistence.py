import base64
import json
import os

import pytest

from conftest import ORIGIN, storage_state
from naukri_refresh.domain import SessionState
from naukri_refresh.errors import SessionCorrupt, SessionNotFound, StoreWriteFailure
from naukri_refresh.persistence import ResumeRotation, SessionStore


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "states" / "naukri-login.json")


def test_load_missing_file_raises_not_found(store):
    with pytest.raises(SessionNotFound):
        store.load(ORIGIN)


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2, 3]",
        json.dumps({"cookies": "oops", "origins": []}),
        "",
    ],
)
def test_load_unparseable_file_raises_corrupt(store, content):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(content, encoding="utf-8")
    with pytest.raises(SessionCorrupt):
        store.load(ORIGIN)


def test_load_state_of_another_site_is_corrupt(store):
    foreign = {"cookies": [{"name": "sid", "value": "x", "domain": ".example.org", "path": "/"}], "origins": []}
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps(foreign), encoding="utf-8")
    with pytest.raises(SessionCorrupt):
        store.load(ORIGIN)


def test_save_creates_directory_and_keeps_playwright_shape(store):
    store.save(SessionState.from_storage_state(storage_state("t1"), ORIGIN))

    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert on_disk == storage_state("t1")
    assert store.load(ORIGIN).cookies[0]["value"] == "t1"


def test_interrupted_save_keeps_previous_state(store, monkeypatch):
    store.save(SessionState.from_storage_state(storage_state("old"), ORIGIN))

    def broken_fsync(fd):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(os, "fsync", broken_fsync)
    with pytest.raises(StoreWriteFailure) as excinfo:
        store.save(SessionState.from_storage_state(storage_state("new"), ORIGIN))

    assert excinfo.value.reason == "store_write_failure"
    assert store.load(ORIGIN).cookies[0]["value"] == "old"
    assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]


def test_failed_replace_leaves_no_temp_files(store, monkeypatch):
    def broken_replace(src, dst):
        raise OSError(13, "Permission denied")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(StoreWriteFailure):
        store.save(SessionState.from_storage_state(storage_state("new"), ORIGIN))

    assert list(store.path.parent.iterdir()) == []
    with pytest.raises(SessionNotFound):
        store.load(ORIGIN)


def test_resume_rotation_alternates_between_slots(tmp_path):
    resumes = tmp_path / "resumes"
    resumes.mkdir()
    (resumes / "resume1.pdf").write_bytes(b"%PDF-1")
    (resumes / "resume-2.docx").write_bytes(b"docx")
    rotation = ResumeRotation(tmp_path / "resume-state.json", resumes, env={})

    picked = [rotation.next_resume().name for _ in range(3)]

    assert picked == ["resume1.pdf", "resume-2.docx", "resume1.pdf"]
    assert json.loads((tmp_path / "resume-state.json").read_text())["lastUsedIndex"] == 1


def test_resume_rotation_falls_back_to_other_slot(tmp_path):
    resumes = tmp_path / "resumes"
    resumes.mkdir()
    (resumes / "resume1.pdf").write_bytes(b"%PDF-1")
    (tmp_path / "resume-state.json").write_text(json.dumps({"lastUsedIndex": 1}))
    rotation = ResumeRotation(tmp_path / "resume-state.json", resumes, env={})

    resume = rotation.next_resume()

    assert resume.index == 1
    assert rotation.read_state()["lastUsedIndex"] == 1


def test_resume_rotation_decodes_base64_and_cleans_up(tmp_path):
    env = {"CV_FILE_1_BASE64": base64.b64encode(b"cv bytes").decode(), "CV_FILE_1_EXT": "docx"}
    rotation = ResumeRotation(tmp_path / "resume-state.json", tmp_path / "resumes", env=env)

    resume = rotation.next_resume()

    assert resume.name == "resume-1.docx"
    assert resume.path.read_bytes() == b"cv bytes"
    rotation.cleanup_temp()
    assert not rotation.temp_dir.exists()


def test_resume_rotation_without_files_returns_none(tmp_path):
    rotation = ResumeRotation(tmp_path / "resume-state.json", tmp_path / "resumes", env={"RESUME_PATH_1": "missing.pdf"})
    assert rotation.next_resume() is None


@pytest.mark.parametrize("encoded", ["abc", "not base64!"])
def test_resume_rotation_ignores_invalid_base64(tmp_path, encoded):
    rotation = ResumeRotation(tmp_path / "resume-state.json", tmp_path / "resumes", env={"CV_FILE_1_BASE64": encoded})
    assert rotation.resolve(1) is None
    assert rotation.next_resume() is None
