from pathlib import Path

import pytest

from database import decode_value
from helpers import build_config, build_manager
from orchestrator.admin_process import AdminProcess, IncrementalRepair, ProcessLock


def seed(manager, owners: int, corrupted_every: int = 10) -> None:
    manager.insert_owners(range(1, owners + 1))
    manager.insert_meta_rows(
        (
            post_id,
            "gallery",
            {"gallery": ["old", "new"]} if post_id % corrupted_every == 0 else "clean",
        )
        for post_id in range(1, owners + 1)
    )


def build_incremental(tmp_path: Path, *extra: str) -> tuple:
    config = build_config(tmp_path, "scan:", "  chunk_size: 100", *extra)
    manager = build_manager(tmp_path)
    return IncrementalRepair(config, manager), manager


def test_step_advances_offset_by_one_chunk(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("ACFML_CLEANER_CHUNK_NUMS", raising=False)
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 250)

    result = incremental.run_step()

    assert result.ran is True
    assert (result.offset, result.total, result.pages, result.repaired) == (100, 250, 1, 10)
    assert result.notice == "ACFML Cleaner has processed 100 / 250 posts"
    state = incremental.state()
    assert state.offset == 100
    assert state.finished is False
    assert state.locked is False
    manager.close()


def test_steps_finish_once_offset_reaches_total(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("ACFML_CLEANER_CHUNK_NUMS", raising=False)
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 250)

    offsets = [incremental.run_step().offset for _ in range(3)]

    assert offsets == [100, 200, 300]
    assert incremental.state().finished is True
    repaired = [record for record in manager.fetch_meta_range(0, 300) if record.post_id % 10 == 0]
    assert all(decode_value(record.meta_value) == "new" for record in repaired)
    assert incremental.on_admin_init(is_admin=True, logged_in=True) is None
    manager.close()


def test_step_resumes_from_persisted_offset(tmp_path: Path) -> None:
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 250)
    AdminProcess(manager).update_offset(200)

    result = incremental.run_step(chunk_iterations=1)

    assert result.offset == 300
    assert incremental.state().finished is True
    untouched = manager.fetch_meta_range(0, 200)
    assert any(decode_value(record.meta_value) == {"gallery": ["old", "new"]} for record in untouched)
    manager.close()


def test_chunk_iterations_from_environment(tmp_path: Path, monkeypatch) -> None:
    incremental, manager = build_incremental(tmp_path, "incremental:", "  chunk_iterations: 1")
    seed(manager, 250)
    monkeypatch.setenv("ACFML_CLEANER_CHUNK_NUMS", "5")

    result = incremental.run_step()

    assert result.pages == 3
    assert result.offset == 300
    assert incremental.state().finished is True
    manager.close()


def test_chunk_iterations_from_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("ACFML_CLEANER_CHUNK_NUMS", raising=False)
    incremental, manager = build_incremental(tmp_path, "incremental:", "  chunk_iterations: 2")

    assert incremental.chunk_iterations() == 2
    manager.close()


def test_locked_step_is_a_no_op(tmp_path: Path) -> None:
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 250)
    assert ProcessLock(manager).acquire() is True

    result = incremental.run_step(chunk_iterations=1)

    assert result.ran is False
    assert (result.offset, result.total) == (0, 250)
    state = incremental.state()
    assert state.offset == 0
    assert state.locked is True
    assert state.finished is False
    manager.close()


def test_lock_released_when_step_fails(tmp_path: Path) -> None:
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 250)
    AdminProcess(manager).update_offset(100)

    def fail(records):
        raise RuntimeError("write failed")

    incremental.repairer.repair_page = fail
    with pytest.raises(RuntimeError):
        incremental.run_step(chunk_iterations=1)

    state = incremental.state()
    assert state.locked is False
    assert state.offset == 100
    manager.close()


def test_run_lockable_returns_result_and_releases(tmp_path: Path) -> None:
    manager = build_manager(tmp_path)
    lock = ProcessLock(manager)

    assert lock.run_lockable(lambda: "done") == "done"
    assert lock.is_locked() is False

    lock.acquire()
    calls = []
    assert lock.run_lockable(lambda: calls.append(1)) is None
    assert calls == []
    manager.close()


def test_admin_hook_requires_logged_in_admin(tmp_path: Path) -> None:
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 50)

    assert incremental.on_admin_init(is_admin=False, logged_in=True) is None
    assert incremental.on_admin_init(is_admin=True, logged_in=False) is None
    assert incremental.state().offset == 0

    result = incremental.on_admin_init(is_admin=True, logged_in=True)
    assert result is not None
    assert result.offset == 100
    assert incremental.state().finished is True
    manager.close()


def test_reset_clears_progress(tmp_path: Path) -> None:
    incremental, manager = build_incremental(tmp_path)
    process = AdminProcess(manager)
    process.update_offset(500)
    process.finish()
    ProcessLock(manager).acquire()

    process.reset()

    state = incremental.state()
    assert (state.offset, state.finished, state.locked) == (0, False, False)
    manager.close()


def test_lock_row_with_other_truthy_text_is_not_held(tmp_path: Path) -> None:
    incremental, manager = build_incremental(tmp_path)
    seed(manager, 250)
    manager.update_option(ProcessLock.LOCK, "true")

    assert incremental.state().locked is False
    result = incremental.run_step(chunk_iterations=1)

    assert result.ran is True
    assert result.offset == 100
    assert incremental.state().locked is False
    manager.close()
