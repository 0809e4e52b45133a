"""
Testes unitarios para a camada kopf do operator.

Cobertura:
- Locks por experimento
- Handlers create/update
- Daemon de reagendamento
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import kopf
import pytest

from neural_hive_chaos.controllers.chaos_controller import ReconcileResult
from neural_hive_chaos.errors import JobBuildError
from neural_hive_chaos.operator.main import (
    KeyedLocks,
    experiment_create_handler,
    experiment_delete_handler,
    experiment_requeue_daemon,
    reconcile_experiment,
)


class FakeStopped:
    """Substituto de kopf.DaemonStopped que para após N esperas."""

    def __init__(self, max_waits=10):
        self.waits = []
        self.max_waits = max_waits

    def __bool__(self):
        return len(self.waits) >= self.max_waits

    async def wait(self, delay):
        self.waits.append(delay)


def make_memo(reconcile):
    memo = kopf.Memo()
    memo.locks = KeyedLocks()
    memo.controller = MagicMock()
    memo.controller.reconcile = reconcile
    memo.settings = SimpleNamespace(error_backoff_seconds=30.0)
    return memo


class TestKeyedLocks:

    def test_same_key_same_lock(self):
        locks = KeyedLocks()

        assert locks.get('default', 'exp') is locks.get('default', 'exp')
        assert locks.get('default', 'exp') is not locks.get('default', 'other')
        assert len(locks) == 2

    def test_discard(self):
        locks = KeyedLocks()
        locks.get('default', 'exp')

        locks.discard('default', 'exp')
        locks.discard('default', 'missing')

        assert ('default', 'exp') not in locks

    @pytest.mark.asyncio
    async def test_passes_for_same_experiment_are_serialized(self):
        running = []
        overlaps = []

        async def reconcile(namespace, name):
            if running:
                overlaps.append(name)
            running.append(name)
            await asyncio.sleep(0.01)
            running.remove(name)
            return ReconcileResult(requeue_after=10.0)

        memo = make_memo(reconcile)

        await asyncio.gather(*(reconcile_experiment(memo, 'default', 'exp') for _ in range(3)))

        assert overlaps == []


class TestHandlers:

    @pytest.mark.asyncio
    async def test_create_handler_reconciles(self):
        reconcile = AsyncMock(return_value=ReconcileResult(requeue_after=10.0))
        memo = make_memo(reconcile)

        await experiment_create_handler(name='exp', namespace='default', memo=memo)

        reconcile.assert_awaited_once_with('default', 'exp')

    @pytest.mark.asyncio
    async def test_create_handler_failure_is_temporary(self):
        reconcile = AsyncMock(side_effect=JobBuildError('job.batch/backoffLimit', 'x'))
        memo = make_memo(reconcile)

        with pytest.raises(kopf.TemporaryError):
            await experiment_create_handler(name='exp', namespace='default', memo=memo)

    @pytest.mark.asyncio
    async def test_delete_handler_discards_lock(self):
        memo = make_memo(AsyncMock())
        memo.locks.get('default', 'exp')

        await experiment_delete_handler(name='exp', namespace='default', memo=memo)

        assert len(memo.locks) == 0


class TestRequeueDaemon:

    @pytest.mark.asyncio
    async def test_requeues_with_result_interval(self):
        reconcile = AsyncMock(return_value=ReconcileResult(requeue_after=10.0))
        stopped = FakeStopped(max_waits=2)

        await experiment_requeue_daemon(
            name='exp', namespace='default', stopped=stopped, memo=make_memo(reconcile)
        )

        assert stopped.waits == [10.0, 10.0]
        assert reconcile.await_count == 2

    @pytest.mark.asyncio
    async def test_backs_off_on_error(self):
        reconcile = AsyncMock(side_effect=[RuntimeError('boom'), ReconcileResult(requeue_after=10.0)])
        stopped = FakeStopped(max_waits=2)

        await experiment_requeue_daemon(
            name='exp', namespace='default', stopped=stopped, memo=make_memo(reconcile)
        )

        assert stopped.waits == [30.0, 10.0]

    @pytest.mark.asyncio
    async def test_stops_when_experiment_gone(self):
        reconcile = AsyncMock(return_value=ReconcileResult(requeue_after=None))
        stopped = FakeStopped()

        await experiment_requeue_daemon(
            name='exp', namespace='default', stopped=stopped, memo=make_memo(reconcile)
        )

        assert stopped.waits == []
        reconcile.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requeue_after,max_waits", [(None, 10), (10.0, 1)])
    async def test_exit_releases_lock_after_delete(self, requeue_after, max_waits):
        reconcile = AsyncMock(return_value=ReconcileResult(requeue_after=requeue_after))
        memo = make_memo(reconcile)
        memo.locks.get('default', 'exp')
        await experiment_delete_handler(name='exp', namespace='default', memo=memo)

        await experiment_requeue_daemon(
            name='exp', namespace='default', stopped=FakeStopped(max_waits=max_waits), memo=memo
        )

        assert ('default', 'exp') not in memo.locks
        assert len(memo.locks) == 0
