"""
Read/write routing tests.

Two distinct SQLite engines stand in for the master and the replica so
``RoutingSession.get_bind`` can be checked by identity.
"""
import pytest
from sqlalchemy import create_engine, delete, insert, select, update

from notice_api.middleware import RequestStats, request_stats_var
from notice_api.models import Notice
from notice_api.routing import (
    MASTER,
    SLAVE,
    RoutingSession,
    current_data_source,
    data_source_var,
    transactional,
)

master = create_engine("sqlite://")
replica = create_engine("sqlite://")


@pytest.fixture
def session():
    s = RoutingSession(target_engines={MASTER: master, SLAVE: replica})
    yield s
    s.close()


def test_unset_context_falls_back_to_master(session):
    assert data_source_var.get() is None
    assert current_data_source() == MASTER
    assert session.get_bind(clause=select(Notice)) is master


def test_slave_key_selects_replica_for_reads(session):
    token = data_source_var.set(SLAVE)
    try:
        assert session.get_bind(clause=select(Notice)) is replica
    finally:
        data_source_var.reset(token)


@pytest.mark.parametrize(
    "stmt",
    [insert(Notice), update(Notice).values(title="x"), delete(Notice)],
    ids=["insert", "update", "delete"],
)
def test_writes_always_go_to_master(session, stmt):
    token = data_source_var.set(SLAVE)
    try:
        assert session.get_bind(clause=stmt) is master
    finally:
        data_source_var.reset(token)


def test_unknown_key_falls_back_to_master(session):
    token = data_source_var.set("analytics")
    try:
        assert session.get_bind(clause=select(Notice)) is master
    finally:
        data_source_var.reset(token)


def test_chosen_key_is_recorded_on_request_stats(session):
    stats = RequestStats()
    stats_token = request_stats_var.set(stats)
    key_token = data_source_var.set(SLAVE)
    try:
        session.get_bind(clause=select(Notice))
        data_source_var.set(MASTER)
        session.get_bind(clause=select(Notice))
        session.get_bind(clause=select(Notice))
    finally:
        data_source_var.reset(key_token)
        request_stats_var.reset(stats_token)
    assert stats.data_sources == [SLAVE, MASTER]


def test_session_without_targets_uses_plain_bind():
    s = RoutingSession(bind=master)
    try:
        assert s.get_bind() is master
    finally:
        s.close()


# ---------------------------------------------------------------------------
# @transactional
# ---------------------------------------------------------------------------

@transactional(read_only=True)
async def _read():
    return current_data_source()


@transactional
async def _write():
    return current_data_source()


@transactional
async def _write_calling_read():
    inner = await _read()
    return inner, current_data_source()


@transactional(read_only=True)
async def _failing_read():
    raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_read_only_operation_uses_slave():
    assert await _read() == SLAVE
    assert data_source_var.get() is None


@pytest.mark.asyncio
async def test_read_write_operation_uses_master():
    assert await _write() == MASTER
    assert data_source_var.get() is None


@pytest.mark.asyncio
async def test_nested_read_restores_outer_key():
    assert await _write_calling_read() == (SLAVE, MASTER)


@pytest.mark.asyncio
async def test_key_cleared_after_exception():
    with pytest.raises(RuntimeError):
        await _failing_read()
    assert data_source_var.get() is None


def test_decorator_exposes_intent():
    assert _read.read_only is True
    assert _write.read_only is False
    assert _read.__name__ == "_read"
