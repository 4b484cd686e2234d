from collections import deque
from concurrent import futures
import heapq
import logging
import multiprocessing
import queue

from .constants import DEFAULTS
from ..error import BackpressureTimeout, WorkerError
from ..util import DEVNULL


def default_workers():
    return max(1, multiprocessing.cpu_count() - 1)


class ParallelExecutor:
    """
    Fans clusters out to a pool of workers and re-emits the results in the order the clusters were dispatched

    Completed results wait in a reorder buffer (a heap keyed on the cluster sort key) until every cluster dispatched
    before them has been emitted. Dispatch pauses while the buffer is full so that no more than
    max_pending + workers clusters are ever in flight

    Example:
        >>> executor = ParallelExecutor(call_consensus, workers=4)
        >>> for consensus in executor.run(builder.build(index.iterate())):
        ...     pass
    """

    def __init__(
        self,
        func,
        workers=DEFAULTS.workers,
        max_pending=DEFAULTS.max_pending,
        drain_timeout=DEFAULTS.drain_timeout,
        strict=DEFAULTS.strict,
        pool_factory=futures.ProcessPoolExecutor,
        log=DEVNULL,
    ):
        """
        Args:
            func (callable): picklable function called with a single cluster, returns the result to emit
            workers (int): size of the worker pool. 0 computes inline, None uses one less than the cpu count
            max_pending (int): size of the reorder buffer
            drain_timeout (float): seconds to wait for any in-flight work before raising BackpressureTimeout
            strict (bool): raise WorkerError on the first failed cluster instead of skipping it
            pool_factory (callable): creates the executor, called with max_workers
            log (Log): function to print logging messages to
        """
        if max_pending < 1:
            raise ValueError('max_pending must be a positive integer', max_pending)
        self.func = func
        self.workers = default_workers() if workers is None else workers
        if self.workers < 0:
            raise ValueError('workers must be a non-negative integer', workers)
        self.max_pending = max_pending
        self.drain_timeout = drain_timeout
        self.strict = strict
        self.pool_factory = pool_factory
        self.log = log
        self.dispatched = 0
        self.emitted = 0
        self.skipped = 0
        self.peak_in_flight = 0

    def capacity(self):
        """
        Returns:
            int: the maximum number of clusters dispatched but not yet emitted
        """
        return self.max_pending + self.workers

    def _check_order(self, previous, sort_key):
        if previous is not None and not previous < sort_key:
            raise AssertionError('clusters must be dispatched in strictly increasing order', previous, sort_key)

    def _collect(self, cluster, call):
        """
        get the result of a single cluster, wrapping any failure as a WorkerError

        Returns:
            the result or None if the cluster was skipped

        Raises:
            WorkerError: the cluster failed and strict is set, or the worker pool itself is broken
        """
        try:
            return call()
        except futures.BrokenExecutor as err:
            # every in-flight cluster fails with the pool so none of them can be skipped
            raise self._broken_pool_error(cluster) from err
        except Exception as err:
            error = WorkerError(str(cluster.key), cluster.read_ids(), repr(err))
            if self.strict:
                raise error from err
            self.skipped += 1
            self.log('skipping cluster:', error, level=logging.WARNING)
            return None

    def _broken_pool_error(self, cluster):
        return WorkerError(str(cluster.key), cluster.read_ids(), 'the worker pool terminated abruptly')

    def run(self, clusters):
        """
        Args:
            clusters (iterable): clusters in strictly increasing sort_key order

        Yields:
            the non-skipped results of func, in the order of the input clusters

        Raises:
            BackpressureTimeout: no in-flight cluster completed within drain_timeout
            WorkerError: a cluster failed and strict is set, or a worker process died
        """
        if self.workers == 0:
            return self._run_inline(clusters)
        return self._run_pool(clusters)

    def _run_inline(self, clusters):
        previous = None
        for cluster in clusters:
            sort_key = cluster.sort_key()
            self._check_order(previous, sort_key)
            previous = sort_key
            self.dispatched += 1
            self.peak_in_flight = max(self.peak_in_flight, 1)
            result = self._collect(cluster, lambda: self.func(cluster))
            if result is not None:
                self.emitted += 1
                yield result

    def _drain(self, finished, in_flight, order, completed, block):
        """
        move finished futures into the reorder buffer and emit everything which is now in order

        Args:
            finished (queue.SimpleQueue): futures put here by their done callback
            in_flight (dict): futures mapped to the cluster they compute
            order (collections.deque): sort keys dispatched and not yet emitted
            completed (list): heap of (sort key, result)
            block (bool): wait for at least one future to finish
        """
        done = []
        if block:
            try:
                done.append(finished.get(timeout=self.drain_timeout))
            except queue.Empty:
                raise BackpressureTimeout(str(order[0][0]), self.drain_timeout, len(in_flight))
        while not finished.empty():
            done.append(finished.get())

        for cluster, future in sorted([(in_flight.pop(f), f) for f in done], key=lambda x: x[0].sort_key()):
            heapq.heappush(completed, (cluster.sort_key(), self._collect(cluster, future.result)))

        while completed and order and completed[0][0] == order[0]:
            _, result = heapq.heappop(completed)
            order.popleft()
            if result is not None:
                self.emitted += 1
                yield result

    def _submit(self, pool, cluster, in_flight, finished):
        try:
            future = pool.submit(self.func, cluster)
        except futures.BrokenExecutor as err:
            oldest = min(in_flight.values(), key=lambda c: c.sort_key(), default=cluster)
            raise self._broken_pool_error(oldest) from err
        in_flight[future] = cluster
        future.add_done_callback(finished.put)

    def _run_pool(self, clusters):
        pool = self.pool_factory(max_workers=self.workers)
        in_flight = {}  # future => cluster
        finished = queue.SimpleQueue()
        order = deque()  # sort keys dispatched and not yet emitted
        completed = []  # heap of (sort key, result)
        previous = None
        try:
            for cluster in clusters:
                sort_key = cluster.sort_key()
                self._check_order(previous, sort_key)
                previous = sort_key
                while len(order) >= self.capacity() or len(completed) >= self.max_pending:
                    yield from self._drain(finished, in_flight, order, completed, block=True)

                self._submit(pool, cluster, in_flight, finished)
                order.append(sort_key)
                self.dispatched += 1
                self.peak_in_flight = max(self.peak_in_flight, len(order))
                yield from self._drain(finished, in_flight, order, completed, block=False)

            while order:
                yield from self._drain(finished, in_flight, order, completed, block=True)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)
